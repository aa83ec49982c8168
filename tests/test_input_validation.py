import pytest

import settings
from error_handler import ValidationError
from input_validation import (
    CodeGenerationInput,
    CreatePromptInput,
    ImproveCodeInput,
    SearchQueryInput,
    UIGenerationInput,
    UpdateProfileInput,
    ensure_file_extension,
    render_markdown_safe,
    sanitize_filename,
    sanitize_html,
    sanitize_search_query,
    sanitize_string,
    validate_request,
)


def _fields(excinfo) -> set:
    return {d["field"] for d in excinfo.value.details}


def test_sanitize_string():
    assert sanitize_string('  <b>"hi";</b>  ') == "bhi/b"
    assert len(sanitize_string("x" * 2000)) == 1000


def test_sanitize_search_query_keeps_japanese():
    assert sanitize_search_query("hello! <world> こんにちは") == "hello world こんにちは"


def test_sanitize_html():
    assert sanitize_html('<a onclick=alert(1) href="javascript:x">') == 'a alert(1) href="x"'


@pytest.mark.parametrize("raw, expected", [
    ("../etc/passwd", "_etc_passwd"),
    ("CON", "_CON_"),
    ('a<b>:c"|.txt', "abc.txt"),
])
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected


@pytest.mark.parametrize("name, mime, expected", [
    ("photo", "image/png", "photo.png"),
    ("clip", "video/x-foo", "clip.mp4"),
    ("doc.pdf", "application/pdf", "doc.pdf"),
    ("blob", "application/octet-stream", "blob.bin"),
])
def test_ensure_file_extension(name, mime, expected):
    assert ensure_file_extension(name, mime) == expected


def test_render_markdown_safe_strips_active_content():
    text = (
        "# Title\n\n"
        "<script>alert(1)</script>\n\n"
        '<p onclick="x()">hi</p>\n\n'
        "[link](javascript:void)\n\n"
        "```\ncode\n```\n"
    )
    html = render_markdown_safe(text)
    assert "<h1>Title</h1>" in html
    assert "<pre><code>" in html
    assert "<script" not in html
    assert "onclick" not in html
    assert "javascript:" not in html


def test_create_prompt_input_sanitizes_and_defaults():
    payload = validate_request(CreatePromptInput, {"title": "My <prompt>", "content": "x" * 20})
    assert payload.title == "My prompt"
    assert payload.price == 0
    assert payload.is_public is True
    assert payload.category_id is None


def test_create_prompt_input_reports_every_bad_field():
    with pytest.raises(ValidationError) as excinfo:
        validate_request(CreatePromptInput, {
            "title": "ab", "content": "short", "price": -1, "category_id": "not-a-uuid",
        })
    assert excinfo.value.message.startswith("Validation failed: ")
    assert excinfo.value.status_code == 400
    assert _fields(excinfo) == {"title", "content", "price", "category_id"}


def test_search_query_input_coerces_query_args():
    payload = validate_request(SearchQueryInput, {"query": "cats!", "page": "2"})
    assert payload.query == "cats"
    assert payload.page == 2
    assert payload.limit == 20

    with pytest.raises(ValidationError) as excinfo:
        validate_request(SearchQueryInput, {"query": "cats", "limit": "101"})
    assert _fields(excinfo) == {"limit"}


def test_update_profile_input():
    payload = validate_request(UpdateProfileInput, {"display_name": "<Bob>"})
    assert payload.display_name == "Bob"
    assert payload.bio is None


def test_code_generation_input_defaults():
    payload = validate_request(CodeGenerationInput, {"prompt": "  todo app  "})
    assert payload.prompt == "todo app"
    assert payload.model == settings.DEFAULT_MODEL
    assert payload.language == "ja"


def test_code_generation_input_rejects_unknown_values():
    with pytest.raises(ValidationError) as excinfo:
        validate_request(CodeGenerationInput, {"prompt": "   ", "model": "x" * 101, "language": "fr"})
    assert _fields(excinfo) == {"prompt", "model", "language"}


@pytest.mark.parametrize("model", ["claude-3.5-sonnet", "claude-3-haiku", "gpt-4", "gemini-2.0-flash-exp", "llama-3"])
def test_model_accepts_any_short_name(model):
    assert validate_request(ImproveCodeInput, {"originalCode": "x", "improvementRequest": "y", "model": model}).model == model
    assert validate_request(UIGenerationInput, {"prompt": "p", "model": model}).model == model


def test_ui_generation_input_accepts_aliases():
    payload = validate_request(UIGenerationInput, {
        "prompt": "p", "existingCode": {"html": "<p>x</p>"}, "isIteration": True,
    })
    assert payload.existing_code.html == "<p>x</p>"
    assert payload.existing_code.css == ""
    assert payload.is_iteration is True

    assert validate_request(UIGenerationInput, {"prompt": "p", "is_iteration": True}).is_iteration is True


def test_improve_code_input():
    payload = validate_request(ImproveCodeInput, {"originalCode": "x", "improvementRequest": "y"})
    assert payload.framework == "vanilla"

    with pytest.raises(ValidationError) as excinfo:
        validate_request(ImproveCodeInput, {"originalCode": "x" * 200_001, "improvementRequest": "y"})
    assert _fields(excinfo) == {"originalCode"}


def test_validate_request_without_body():
    with pytest.raises(ValidationError) as excinfo:
        validate_request(ImproveCodeInput, None)
    assert _fields(excinfo) == {"originalCode", "improvementRequest"}
