# response_parser.py
"""
Multi-strategy recovery of a file set from free-text model output.

Two families of parsers live here:

* the UI chain (``parse_ui_response``) for ``{html, css, js, description}``
  answers, tried as JSON, then backtick literals, then tolerant regexes;
* the improvement chain (``extract_and_fix_json``) for ``{files: {...}}``
  answers, which never loses code the user already had: whatever the model
  returns is appended to the existing files, not swapped in for them.
"""
import json
import logging
import re

from bs4 import BeautifulSoup

from error_handler import ResponseParseError
from fallbacks import generate_basic_interactions, generate_safe_css, generate_safe_html, generate_safe_js
from html_assembler import (
    IMPROVEMENT_MARKERS,
    clean_external_references,
    embed_files_in_html,
    ensure_required_files,
)
from json_repair import find_json_object, loads_repaired, strip_code_fence, unescape_string

log = logging.getLogger(__name__)

FILE_NAMES = ("index.html", "script.js", "styles.css", "style.css")
METADATA_FIELDS = ("description", "instructions", "framework", "language", "styling", "usedModel")
MIN_FILE_LENGTH = 10
MIN_JS_LENGTH = 50
MAX_FILE_SCAN = 200_000

DEFAULT_UI_DESCRIPTION = "Generated UI"
DEFAULT_CODE_DESCRIPTION = "Generated application"

RESULT_DEFAULTS = {
    "description": "AI improved application",
    "instructions": "The application was improved while keeping existing features.",
    "framework": "Vanilla JavaScript",
    "language": "JavaScript",
    "styling": "CSS",
    "usedModel": "unknown",
}

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_OUTER_OBJECT = re.compile(r"\{[\s\S]*\}")
_WHOLE_OBJECT = re.compile(r"^\s*\{[\s\S]*\}\s*$")
_HTML_DOC = re.compile(r"<!doctype\s+html|<html\b|<head\b|<body\b", re.IGNORECASE)
_BODY_CONTENT = re.compile(r"<body[^>]*>([\s\S]*)</body>", re.IGNORECASE)
_CSS_LINE = re.compile(r"^\s*(?:[.#@:*a-zA-Z][^{};]*\{|[\w-]+\s*:\s*[^;]+;|\})\s*$")
_JS_HINTS = ("function", "const ", "let ", "document.")


# ---------- UI chain ----------

def _finish_ui(html: str, css: str, js: str | None, description: str | None) -> dict:
    if not js or len(js.strip()) < MIN_JS_LENGTH:
        log.info("JavaScript missing or too short, adding basic interactions")
        js = generate_basic_interactions()
    return {"html": html, "css": css, "js": js, "description": description or DEFAULT_UI_DESCRIPTION}


def extract_json_from_response(text: str) -> dict:
    m = _FENCED_JSON.search(text)
    if m:
        candidate = m.group(1)
    else:
        m = _OUTER_OBJECT.search(text)
        candidate = m.group(0) if m else text

    try:
        result = loads_repaired(candidate)
    except ValueError as e:
        raise ResponseParseError(f"Invalid JSON in response: {e}") from e

    if not isinstance(result, dict) or not result.get("html") or not result.get("css"):
        raise ResponseParseError("Invalid response format: missing html or css")
    return result


def _backtick_field(text: str, field: str) -> str | None:
    patterns = [
        rf'"{field}"\s*:\s*`([\s\S]*?)`(?=\s*[,}}])',
        rf'"{field}"\s*:\s*`([\s\S]*?)`',
        rf'"\s*{field}\s*"\s*:\s*`([\s\S]*?)`',
    ]
    for pattern in patterns:
        m = re.search(pattern, text, re.IGNORECASE)
        if m and m.group(1):
            return m.group(1).strip()
    return None


def extract_with_backticks(text: str) -> dict | None:
    html = _backtick_field(text, "html")
    css = _backtick_field(text, "css")
    if not (html and css):
        return None
    return _finish_ui(html, css, _backtick_field(text, "js"), _backtick_field(text, "description"))


def _regex_field(text: str, field: str) -> str | None:
    patterns = [
        rf'"{field}"\s*:\s*"([\s\S]*?)(?="\s*[,}}]|$)',
        rf'"{field}"\s*:\s*`([\s\S]*?)`',
        rf'"{field}"\s*:\s*"([^"]*(?:\\.[^"]*)*)"',
        rf'"{field}"\s*:\s*"([\s\S]*?)"\s*}}',
        rf'"\s*{field}\s*"\s*:\s*"([\s\S]*?)"',
        rf'"{field}"\s*:\s*"([\s\S]*?)(?="\s*,\s*"\w+"|"\s*}}|$)',
        rf'"{field}"\s*:\s*"([\s\S]*?)"\s*(?:}}|$)',
    ]
    for i, pattern in enumerate(patterns, 1):
        m = re.search(pattern, text, re.IGNORECASE)
        if m and m.group(1):
            log.debug("Found %s with pattern %d", field, i)
            return m.group(1)
    return None


def extract_fields_with_regex(text: str) -> dict | None:
    html = _regex_field(text, "html")
    css = _regex_field(text, "css")
    if not (html and css):
        return None
    js = _regex_field(text, "js")
    description = _regex_field(text, "description")
    return _finish_ui(
        unescape_string(html),
        unescape_string(css),
        unescape_string(js) if js else None,
        unescape_string(description) if description else None,
    )


def parse_ui_response(text: str) -> dict:
    try:
        result = extract_json_from_response(text)
        return {
            "html": result["html"],
            "css": result["css"],
            "js": result.get("js") or "",
            "description": result.get("description") or DEFAULT_UI_DESCRIPTION,
        }
    except ResponseParseError as e:
        log.warning("JSON extraction failed: %s", e)

    for strategy in (extract_with_backticks, extract_fields_with_regex):
        result = strategy(text)
        if result:
            log.info("UI response recovered by %s", strategy.__name__)
            return result

    raise ResponseParseError("All parsing strategies failed")


def parse_generated_code(text: str) -> dict:
    """Parse a code-generation answer into html/css/js plus description and features."""
    parsed = None
    m = _FENCED_JSON.search(text)
    unfenced = strip_code_fence(text)
    try:
        if m:
            parsed = loads_repaired(m.group(1))
        elif _WHOLE_OBJECT.match(unfenced):
            parsed = loads_repaired(unfenced.strip())
    except ValueError as e:
        log.warning("Code JSON did not parse: %s", e)
        parsed = None

    if not isinstance(parsed, dict):
        try:
            parsed = parse_ui_response(text)
        except ResponseParseError as e:
            raise ResponseParseError("Failed to parse generated code") from e

    features = parsed.get("features")
    return {
        "html": parsed.get("html") or "",
        "css": parsed.get("css") or "",
        "js": parsed.get("js") or "",
        "description": parsed.get("description") or DEFAULT_CODE_DESCRIPTION,
        "features": features if isinstance(features, list) else [],
    }


# ---------- existing code ----------

def _looks_like_css(code: str) -> bool:
    if "{" not in code or "}" not in code or ":" not in code:
        return False
    css_lines = [ln for ln in code.splitlines() if _CSS_LINE.match(ln)]
    return len(css_lines) > 3


def parse_existing_code(original_code: str | None) -> dict:
    """Split whatever the user already has into named files."""
    if not original_code or not original_code.strip():
        return {}

    files = {}
    try:
        parsed = json.loads(original_code)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict) and isinstance(parsed.get("files"), dict):
        files = {k: v for k, v in parsed["files"].items() if isinstance(v, str)}
    elif _HTML_DOC.search(original_code):
        files["index.html"] = original_code
        soup = BeautifulSoup(original_code, "lxml")
        styles = [s.get_text() for s in soup.find_all("style")]
        scripts = [s.get_text() for s in soup.find_all("script") if not s.get("src")]
        if any(s.strip() for s in styles):
            files["styles.css"] = "\n\n".join(s.strip() for s in styles if s.strip())
        if any(s.strip() for s in scripts):
            files["script.js"] = "\n\n".join(s.strip() for s in scripts if s.strip())
    elif any(h in original_code for h in _JS_HINTS):
        files["script.js"] = original_code
    elif _looks_like_css(original_code):
        files["styles.css"] = original_code

    return {k: v for k, v in files.items() if len(v.strip()) >= MIN_FILE_LENGTH}


def _body_content(html: str) -> str:
    m = _BODY_CONTENT.search(html)
    return m.group(1).strip() if m else ""


def _merge_html(existing: str, new: str) -> str:
    marker = IMPROVEMENT_MARKERS["html"]
    body = _body_content(new)
    idx = existing.lower().rfind("</body>")
    if body and idx != -1:
        return existing[:idx] + f"\n    {marker}\n{body}\n" + existing[idx:]
    return f"{existing}\n\n{marker}\n{new}"


def merge_with_existing_files(new_files: dict, existing_files: dict) -> dict:
    """Existing content always survives; differing new content is appended to it."""
    merged = dict(new_files)
    for name, existing in existing_files.items():
        new = new_files.get(name)
        if not new or not new.strip() or new == existing:
            merged[name] = existing
        elif name.endswith(".css"):
            merged[name] = f"{existing}\n\n{IMPROVEMENT_MARKERS['css']}\n{new}"
        elif name.endswith(".js"):
            merged[name] = f"{existing}\n\n{IMPROVEMENT_MARKERS['js']}\n{new}"
        elif name.endswith(".html"):
            merged[name] = _merge_html(existing, new)
        else:
            merged[name] = f"{existing}\n\n{new}"
    return merged


# ---------- improvement chain ----------

def extract_metadata(text: str) -> dict:
    meta = {}
    for field in METADATA_FIELDS:
        for pattern in (rf'"{field}"\s*:\s*"([^"]*)"', rf"'{field}'\s*:\s*\"([^\"]*)\"", rf'{field}\s*:\s*"([^"]*)"'):
            m = re.search(pattern, text, re.IGNORECASE)
            if m and m.group(1):
                meta[field] = m.group(1)
                break
    return meta


def _repair_truncated(name: str, content: str) -> str:
    if name.endswith(".js"):
        lines = content.split("\n")
        if lines and lines[-1].strip().startswith("//"):
            lines.pop()
            content = "\n".join(lines)
        missing = content.count("{") - content.count("}")
        if missing > 0:
            content += "\n" + "}" * missing
    elif name.endswith(".html"):
        if "</html>" not in content.lower():
            if "</body>" not in content.lower():
                content += "\n</body>"
            content += "\n</html>"
    elif name.endswith(".css"):
        missing = content.count("{") - content.count("}")
        if missing > 0:
            content += "\n" + "}" * missing
    return content


def _extract_file_content(text: str, name: str) -> str:
    escaped = re.escape(name)
    start = -1
    for pattern in (rf'"{escaped}"\s*:\s*"', rf"'{escaped}'\s*:\s*\"", rf'{escaped}\s*:\s*"'):
        m = re.search(pattern, text, re.IGNORECASE)
        if m:
            start = m.end()
            break
    if start == -1:
        return ""

    i, n = start, len(text)
    found_end = False
    while i < n and i - start < MAX_FILE_SCAN:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            j = i + 1
            while j < n and text[j] in " \t\r\n":
                j += 1
            if j >= n or text[j] in ",}":
                found_end = True
                break
        i += 1

    content = text[start:min(i, n)]
    if not found_end and content:
        log.warning("Content of %s looks truncated, repairing", name)
        content = _repair_truncated(name, content)
    return unescape_string(content)


def manual_file_extraction(text: str, existing_files: dict) -> dict:
    files = {}
    for name in FILE_NAMES:
        content = _extract_file_content(text, name)
        if content.strip():
            files[name] = content

    files = merge_with_existing_files(files, existing_files)
    if existing_files:
        for name, content in existing_files.items():
            if not files.get(name, "").strip():
                files[name] = content
    else:
        files = ensure_required_files(files)

    files = clean_external_references(files)
    if "index.html" in files:
        files["index.html"] = embed_files_in_html(files["index.html"], files)

    meta = extract_metadata(text)
    result = {"files": files}
    for field, default in RESULT_DEFAULTS.items():
        result[field] = meta.get(field) or default
    return result


def validate_and_sanitize_result(result, existing_files: dict) -> dict:
    if not isinstance(result, dict):
        raise ResponseParseError("Invalid result object")
    if not isinstance(result.get("files"), dict):
        raise ResponseParseError("Invalid files object")

    files = {}
    for name, content in result["files"].items():
        if not isinstance(content, str):
            continue
        # existing files are kept even when the model shortened them
        if name not in existing_files and len(content.strip()) < MIN_FILE_LENGTH:
            continue
        files[name] = content

    files = merge_with_existing_files(files, existing_files)
    if not existing_files:
        files = ensure_required_files(files)

    files = clean_external_references(files)
    if "index.html" in files:
        files["index.html"] = embed_files_in_html(files["index.html"], files)

    sanitized = {"files": files}
    for field, default in RESULT_DEFAULTS.items():
        sanitized[field] = result.get(field) or default
    return sanitized


def extract_and_fix_json(text: str, original_code: str | None = None) -> dict:
    existing = parse_existing_code(original_code)

    def robust_json_extraction() -> dict:
        parsed = loads_repaired(find_json_object(text))
        return validate_and_sanitize_result(parsed, existing)

    def manual_extraction() -> dict:
        return manual_file_extraction(text, existing)

    last_error = None
    for strategy in (robust_json_extraction, manual_extraction):
        try:
            result = strategy()
            if not result["files"]:
                raise ResponseParseError("No files were generated")
            if "index.html" not in result["files"]:
                raise ResponseParseError("index.html not found")
            log.info("Improvement response recovered by %s", strategy.__name__)
            return result
        except (ResponseParseError, ValueError) as e:
            log.warning("Strategy %s failed: %s", strategy.__name__, e)
            last_error = e

    raise ResponseParseError(f"JSON parse failed: {last_error}")


def _fallback_comment(name: str) -> str:
    note = "Fallback: the previous code was kept unchanged"
    if name.endswith(".css"):
        return f"\n\n/* {note} */"
    if name.endswith(".js"):
        return f"\n\n// {note}"
    if name.endswith(".html"):
        return f"\n\n<!-- {note} -->"
    return ""


def create_fallback_response(framework: str, model: str, original_code: str | None = None) -> dict:
    existing = parse_existing_code(original_code)
    if existing:
        files = clean_external_references(existing)
        if "index.html" in files:
            files["index.html"] = embed_files_in_html(files["index.html"], files)
        files = {name: content + _fallback_comment(name) for name, content in files.items()}
        return {
            "files": files,
            "description": "Existing code preserved (fallback)",
            "instructions": "The improvement could not be applied, so the existing code was returned as-is.",
            "framework": framework or RESULT_DEFAULTS["framework"],
            "language": "JavaScript",
            "styling": "CSS",
            "usedModel": model or "unknown",
        }

    files = {
        "index.html": generate_safe_html(),
        "script.js": generate_safe_js(),
        "styles.css": generate_safe_css(),
    }
    files["index.html"] = embed_files_in_html(files["index.html"], files)
    return {
        "files": files,
        "description": "Starter todo application (fallback)",
        "instructions": "Add tasks, mark them complete and filter the list.",
        "framework": framework or RESULT_DEFAULTS["framework"],
        "language": "JavaScript",
        "styling": "CSS",
        "usedModel": model or "unknown",
    }
