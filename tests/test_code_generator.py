import json

import pytest

import claude_api_handler
import gemini_api_handler
import openai_api_handler
import settings
from code_generator import (
    CodeGenerationError,
    call_model,
    generate_code,
    generate_ui,
    improve_code,
    resolve_model,
    write_outputs,
)
from prompts import SYSTEM


def _fenced(payload: dict) -> str:
    return "Here is the app:\n```json\n" + json.dumps(payload) + "\n```"


@pytest.fixture
def providers(monkeypatch):
    calls = []

    def record(provider):
        def fake(prompt, model, max_tokens, temperature=0.7, system=None):
            calls.append((provider, model, max_tokens, temperature, system))
            return f"{provider} answer"
        return fake

    monkeypatch.setattr(claude_api_handler, "call_claude_api", record("claude"))
    monkeypatch.setattr(openai_api_handler, "call_openai_api", record("openai"))
    monkeypatch.setattr(gemini_api_handler, "call_gemini_api", record("gemini"))
    return calls


def test_resolve_model():
    assert resolve_model("claude-4-sonnet") == "claude-3-7-sonnet-20250219"
    assert resolve_model("gpt-4o") == "gpt-4o"
    assert resolve_model(None) == settings.MODEL_ALIASES.get(settings.DEFAULT_MODEL, settings.DEFAULT_MODEL)


def test_call_model_dispatches_by_model_name(providers):
    assert call_model("hi", "claude-4-sonnet", max_tokens=10) == "claude answer"
    assert call_model("hi", "gpt-4o-mini", temperature=0.1, system="sys") == "openai answer"
    assert call_model("hi", "gemini-2.0-flash") == "gemini answer"
    assert providers == [
        ("claude", "claude-3-7-sonnet-20250219", 10, 0.7, None),
        ("openai", "gpt-4o-mini", settings.MAX_OUTPUT_TOKENS, 0.1, "sys"),
        ("gemini", "gemini-2.0-flash-exp", settings.MAX_OUTPUT_TOKENS, 0.7, None),
    ]


def test_call_model_rejects_unknown_model(providers):
    with pytest.raises(ValueError, match="Unsupported model: llama-3"):
        call_model("hi", "llama-3")
    assert providers == []


# ---------- generate_code ----------

def test_generate_code_embeds_css_and_js(fake_model):
    raw = _fenced({
        "html": '<!DOCTYPE html><html><head><link rel="stylesheet" href="style.css"></head>'
                "<body><h1>Todo</h1></body></html>",
        "css": "h1 { color: red; }",
        "js": "document.title = 'Todo';",
        "description": "Todo app",
        "features": ["add"],
    })
    fake_model.reply(raw)

    result = generate_code("todo app", "gpt-4o", "en")
    html = result["files"]["index.html"]
    assert list(result["files"]) == ["index.html"]
    assert "h1 { color: red; }" in html
    assert "document.title = 'Todo';" in html
    assert 'href="style.css"' not in html
    assert result["description"] == "Todo app"
    assert result["features"] == ["add"]
    assert result["usedModel"] == "gpt-4o"
    assert result["language"] == "en"
    assert result["styling"] == "CSS3"
    assert result["warnings"] == []
    assert result["raw"] == raw

    call = fake_model.calls[0]
    assert call["temperature"] == settings.CODE_TEMPERATURE
    assert call["system"] == SYSTEM
    assert "todo app" in call["prompt"]


def test_generate_code_model_failure(fake_model):
    fake_model.reply(RuntimeError("boom"))
    with pytest.raises(CodeGenerationError, match="boom"):
        generate_code("todo app")


def test_generate_code_unparseable_answer(fake_model):
    fake_model.reply("nothing useful")
    with pytest.raises(CodeGenerationError, match="Failed to parse generated code"):
        generate_code("todo app")


# ---------- generate_ui ----------

def test_generate_ui_parses_answer(fake_model):
    fake_model.reply('{"html": "<div>Hi</div>", "css": "div{}", "js": "", "description": "d"}')
    assert generate_ui("card") == {"html": "<div>Hi</div>", "css": "div{}", "js": "", "description": "d"}
    assert fake_model.calls[0]["temperature"] == settings.IMPROVE_TEMPERATURE


def test_generate_ui_includes_existing_code_in_prompt(fake_model):
    fake_model.reply('{"html": "<div>Hi</div>", "css": "div{}"}')
    generate_ui("make it blue", {"html": "<div>Old</div>", "css": "", "js": ""}, is_iteration=True)
    prompt = fake_model.calls[0]["prompt"]
    assert "## EXISTING CODE" in prompt
    assert "<div>Old</div>" in prompt


def test_generate_ui_api_failure_returns_placeholder(fake_model):
    fake_model.reply(RuntimeError("down"))
    result = generate_ui("<b>card</b>")
    assert result["html"] == "<h1>&lt;b&gt;card&lt;/b&gt;</h1><p>Fallback UI placeholder</p>"
    assert result["js"] == ""


def test_generate_ui_parse_failure_returns_placeholder(fake_model):
    fake_model.reply("no")
    result = generate_ui("card")
    assert result["html"] == "<h1>card</h1><p>Generated UI placeholder</p>"
    assert result["description"] == "Generated UI for: card"


# ---------- improve_code ----------

def test_improve_code_success(fake_model):
    original = "function keep() { return 1; }"
    raw = json.dumps({
        "files": {
            "index.html": "<html><body><h1>App</h1></body></html>",
            "script.js": "function keep() { return 1; }\nfunction added() { return 2; }",
        },
        "description": "Added feature",
    })
    fake_model.reply(raw)

    result = improve_code(original, "add a feature", model="gpt-4o", language="en")
    assert result["fallback"] is False
    assert result["description"] == "Added feature"
    assert "function added()" in result["files"]["index.html"]
    assert result["files"]["script.js"].startswith(original)
    assert result["quality"]["preservationWarnings"] == []
    assert set(result["quality"]["before"]) == {
        "complexity", "maintainability", "readability", "performance", "accessibility", "security",
    }
    assert result["raw"] == raw

    prompt = fake_model.calls[0]["prompt"]
    assert "## FILES THAT MUST BE PRESERVED" in prompt
    assert "- script.js: 29 characters" in prompt


def test_improve_code_unusable_answer_falls_back(fake_model):
    fake_model.reply("Sorry")
    result = improve_code("function keep() { return 42; }", "add a feature")
    assert result["fallback"] is True
    assert result["description"] == "Existing code preserved (fallback)"
    assert result["files"]["script.js"].startswith("function keep() { return 42; }")
    assert result["raw"] == "Sorry"


def test_improve_code_api_failure_falls_back(fake_model):
    fake_model.reply(RuntimeError("quota"))
    result = improve_code("", "build something")
    assert result["fallback"] is True
    assert "class TodoApp" in result["files"]["index.html"]
    assert result["raw"] == "Improvement failed: quota"


# ---------- outputs ----------

def test_write_outputs(tmp_path):
    out = tmp_path / "out"
    result = {"files": {"index.html": "<p>x</p>", "../evil.js": "x()"}, "description": "d", "raw": "zzz"}
    written = write_outputs(out, result, raw="RAW")

    assert (out / "raw_response.txt").read_text("utf-8") == "RAW"
    assert (out / "index.html").read_text("utf-8") == "<p>x</p>"
    assert (out / "evil.js").exists()
    assert not (tmp_path / "evil.js").exists()
    assert json.loads((out / "result.json").read_text("utf-8")) == {"description": "d"}
    assert written["index.html"] == str(out / "index.html")


def test_write_outputs_skips_unusable_names(tmp_path):
    out = tmp_path / "out"
    files = {"index.html": "<p>x</p>", ".": "a()", "..": "b()", "": "c()", "a:b?.js": "d()"}
    written = write_outputs(out, {"files": files}, raw="RAW")

    assert set(written) == {"raw", "index.html", "a:b?.js"}
    assert (out / "ab.js").read_text("utf-8") == "d()"
    assert sorted(p.name for p in out.iterdir()) == ["ab.js", "index.html", "raw_response.txt", "result.json"]
