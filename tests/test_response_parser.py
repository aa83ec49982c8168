import json

import pytest

from error_handler import ResponseParseError
from fallbacks import BASIC_INTERACTIONS_JS
from response_parser import (
    create_fallback_response,
    extract_and_fix_json,
    extract_fields_with_regex,
    extract_metadata,
    extract_with_backticks,
    merge_with_existing_files,
    parse_existing_code,
    parse_generated_code,
    parse_ui_response,
    validate_and_sanitize_result,
)

EXISTING_PAGE = (
    "<!DOCTYPE html>\n<html>\n<head><title>Old</title></head>\n<body>\n"
    "<h1>Old title</h1>\n<script>function existing() { return 1; }</script>\n"
    "</body>\n</html>"
)


# ---------- UI chain ----------

def test_parse_ui_response_fenced_json():
    text = (
        "Sure!\n```json\n"
        '{"html": "<div>Hi</div>", "css": "div { color: red; }", "js": "", "description": "Card"}'
        "\n```"
    )
    assert parse_ui_response(text) == {
        "html": "<div>Hi</div>",
        "css": "div { color: red; }",
        "js": "",
        "description": "Card",
    }


def test_parse_ui_response_recovers_truncated_answer_with_regex():
    js = "document.querySelector('p').addEventListener('click', () => alert(1));"
    text = 'Result: {"html": "<p>Hi</p>", "css": "p { color: red; }", "js": "' + js
    result = parse_ui_response(text)
    assert result["html"] == "<p>Hi</p>"
    assert result["css"] == "p { color: red; }"
    assert result["js"] == js
    assert result["description"] == "Generated UI"


def test_extract_with_backticks_swaps_short_js_for_basic_interactions():
    text = '{"html": `<button>Go</button>`, "css": `button { color: red; }`, "js": `x()`}'
    result = extract_with_backticks(text)
    assert result["html"] == "<button>Go</button>"
    assert result["css"] == "button { color: red; }"
    assert result["js"] == BASIC_INTERACTIONS_JS
    assert result["description"] == "Generated UI"


def test_extract_with_backticks_needs_html_and_css():
    assert extract_with_backticks('{"html": `<p>only html</p>`}') is None


def test_extract_fields_with_regex_unescapes_values():
    text = '{"html": "<p>Hello\\nWorld</p>", "css": "p { color: blue; }"}'
    result = extract_fields_with_regex(text)
    assert result["html"] == "<p>Hello\nWorld</p>"
    assert result["css"] == "p { color: blue; }"
    assert result["js"] == BASIC_INTERACTIONS_JS


def test_parse_ui_response_all_strategies_fail():
    with pytest.raises(ResponseParseError, match="All parsing strategies failed"):
        parse_ui_response("I cannot help with that.")


def test_parse_generated_code_fenced():
    text = '```json\n{"html": "<h1>A</h1>", "css": "h1{}", "js": "go()", "description": "Demo"}\n```'
    result = parse_generated_code(text)
    assert result == {"html": "<h1>A</h1>", "css": "h1{}", "js": "go()", "description": "Demo", "features": []}


def test_parse_generated_code_whole_object_with_features():
    result = parse_generated_code('{"html": "<h1>A</h1>", "features": ["x", "y"]}')
    assert result["features"] == ["x", "y"]
    assert result["css"] == ""
    assert result["description"] == "Generated application"


def test_parse_generated_code_untagged_fence():
    result = parse_generated_code('```\n{"html": "<h1>A</h1>", "js": "go()"}\n```')
    assert result["html"] == "<h1>A</h1>"
    assert result["js"] == "go()"


def test_parse_generated_code_failure():
    with pytest.raises(ResponseParseError, match="Failed to parse generated code"):
        parse_generated_code("nothing useful")


# ---------- existing code ----------

def test_parse_existing_code_json_files():
    code = json.dumps({"files": {
        "index.html": "<html><body>Hi there</body></html>",
        "script.js": "console.log('hello');",
        "x.txt": "short",
        "n": 5,
    }})
    assert parse_existing_code(code) == {
        "index.html": "<html><body>Hi there</body></html>",
        "script.js": "console.log('hello');",
    }


def test_parse_existing_code_html_document_splits_style_and_script():
    code = (
        "<!DOCTYPE html><html><head><style>body { color: red; }</style></head>"
        '<body><h1>Hi</h1><script src="lib.js"></script>'
        "<script>function hello() { return 1; }</script></body></html>"
    )
    files = parse_existing_code(code)
    assert files["index.html"] == code
    assert files["styles.css"] == "body { color: red; }"
    assert files["script.js"] == "function hello() { return 1; }"


def test_parse_existing_code_plain_js():
    code = "function greet() {\n  return 'hi';\n}"
    assert parse_existing_code(code) == {"script.js": code}


def test_parse_existing_code_plain_css():
    code = ".a {\n  color: red;\n}\n.b {\n  color: blue;\n}"
    assert parse_existing_code(code) == {"styles.css": code}


@pytest.mark.parametrize("code", [None, "", "   ", "just some words"])
def test_parse_existing_code_nothing_usable(code):
    assert parse_existing_code(code) == {}


def test_merge_appends_new_css_after_marker():
    merged = merge_with_existing_files({"styles.css": "b{}"}, {"styles.css": "a{}"})
    assert merged["styles.css"] == "a{}\n\n/* Added by improvement */\nb{}"


def test_merge_keeps_existing_when_new_is_same_or_empty():
    assert merge_with_existing_files({"script.js": "x()"}, {"script.js": "x()"}) == {"script.js": "x()"}
    assert merge_with_existing_files({"script.js": "  "}, {"script.js": "x()"}) == {"script.js": "x()"}
    assert merge_with_existing_files({}, {"script.js": "x()"}) == {"script.js": "x()"}


def test_merge_inserts_new_body_before_existing_close():
    existing = {"index.html": "<html><body><h1>Old</h1></body></html>"}
    new = {"index.html": "<html><body><p>New</p></body></html>", "extra.js": "y()"}
    merged = merge_with_existing_files(new, existing)
    assert merged["index.html"] == (
        "<html><body><h1>Old</h1>\n    <!-- Added by improvement -->\n<p>New</p>\n</body></html>"
    )
    assert merged["extra.js"] == "y()"
    assert existing == {"index.html": "<html><body><h1>Old</h1></body></html>"}


# ---------- improvement chain ----------

def test_extract_metadata():
    text = '{"description": "Nice app", framework: "React"}'
    assert extract_metadata(text) == {"description": "Nice app", "framework": "React"}


def test_extract_and_fix_json_valid_answer_embeds_once():
    text = json.dumps({
        "files": {
            "index.html": "<!DOCTYPE html><html><head><title>T</title></head><body><h1>Hi</h1></body></html>",
            "styles.css": "h1 { color: red; }",
            "script.js": "document.title = 'ready';",
        },
        "description": "Demo",
    })
    result = extract_and_fix_json(text)
    html = result["files"]["index.html"]
    assert set(result["files"]) == {"index.html", "styles.css", "script.js"}
    assert html.count("h1 { color: red; }") == 1
    assert html.count("document.title = 'ready';") == 1
    assert result["description"] == "Demo"
    assert result["framework"] == "Vanilla JavaScript"


def test_extract_and_fix_json_merges_truncated_answer_into_existing_code():
    text = (
        '{"files": {"index.html": "<html><body><div class="new">New block</div></body></html>", '
        '"script.js": "function added() { console.log("hi");'
    )
    result = extract_and_fix_json(text, EXISTING_PAGE)
    html = result["files"]["index.html"]
    script = result["files"]["script.js"]

    assert "<h1>Old title</h1>" in html
    assert '<div class="new">New block</div>' in html
    assert "<!-- Added by improvement -->" in html
    assert "function added()" in html
    assert html.count("function existing()") == 1
    assert script.startswith("function existing()")
    assert "// Added by improvement" in script
    assert script.endswith('function added() { console.log("hi");\n}')


def test_extract_and_fix_json_without_index_html_fails():
    with pytest.raises(ResponseParseError, match="JSON parse failed"):
        extract_and_fix_json("Sorry, I can't do that.", "function keep() { return 42; }")


def test_extract_and_fix_json_without_existing_code_returns_starter():
    result = extract_and_fix_json("Sorry, no code today.")
    assert set(result["files"]) == {"index.html", "script.js", "styles.css"}
    assert result["files"]["index.html"].count("class TodoApp") == 1
    assert result["description"] == "AI improved application"


def test_validate_and_sanitize_drops_bad_new_files():
    result = {"files": {"index.html": "<html><body>New page</body></html>", "script.js": 5, "a.css": "x{}"}}
    out = validate_and_sanitize_result(result, {})
    assert "a.css" not in out["files"]
    assert "class TodoApp" in out["files"]["script.js"]
    assert out["usedModel"] == "unknown"


def test_validate_and_sanitize_keeps_short_existing_files():
    existing = {"index.html": "<html><body><p>Existing page</p></body></html>", "styles.css": "p{}"}
    out = validate_and_sanitize_result({"files": {"styles.css": "p{}"}}, existing)
    assert out["files"]["styles.css"] == "p{}"
    assert "script.js" not in out["files"]
    assert "<p>Existing page</p>" in out["files"]["index.html"]


def test_validate_and_sanitize_rejects_bad_shapes():
    with pytest.raises(ResponseParseError, match="Invalid result object"):
        validate_and_sanitize_result([], {})
    with pytest.raises(ResponseParseError, match="Invalid files object"):
        validate_and_sanitize_result({"files": []}, {})


def test_create_fallback_response_without_existing_code():
    result = create_fallback_response("vanilla", "m")
    assert set(result["files"]) == {"index.html", "script.js", "styles.css"}
    assert result["files"]["index.html"].count("class TodoApp") == 1
    assert result["description"] == "Starter todo application (fallback)"
    assert result["framework"] == "vanilla"
    assert result["usedModel"] == "m"


def test_create_fallback_response_keeps_existing_code():
    original = '<html><head><link rel="stylesheet" href="styles.css"></head><body><h1>Mine</h1></body></html>'
    result = create_fallback_response("", None, original)
    html = result["files"]["index.html"]
    assert "<h1>Mine</h1>" in html
    assert 'href="styles.css"' not in html
    assert html.endswith("<!-- Fallback: the previous code was kept unchanged -->")
    assert result["description"] == "Existing code preserved (fallback)"
    assert result["framework"] == "Vanilla JavaScript"
    assert result["usedModel"] == "unknown"
