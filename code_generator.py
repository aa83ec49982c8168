# code_generator.py
import json
import logging
from pathlib import Path

import settings
from code_quality import calculate_quality_metrics, validate_code_quality, verify_preservation
from error_handler import ResponseParseError
from fallbacks import generate_fallback_ui
from html_assembler import clean_external_references, embed_files_in_html, validate_generated_code
from input_validation import sanitize_filename
from prompts import SYSTEM, build_code_prompt, build_improvement_prompt, build_ui_prompt
from response_parser import (
    create_fallback_response,
    extract_and_fix_json,
    parse_generated_code,
    parse_ui_response,
)

log = logging.getLogger(__name__)

OPENAI_PREFIXES = ("gpt", "o1", "o3", "o4")


class CodeGenerationError(Exception):
    pass


def resolve_model(model: str | None) -> str:
    name = (model or settings.DEFAULT_MODEL).strip()
    return settings.MODEL_ALIASES.get(name, name)


def call_model(prompt: str, model: str | None = None, max_tokens: int | None = None,
               temperature: float = 0.7, system: str | None = None) -> str:
    """Send ``prompt`` to whichever provider serves ``model`` and return its text."""
    name = resolve_model(model)
    max_tokens = max_tokens or settings.MAX_OUTPUT_TOKENS
    lowered = name.lower()
    log.info("Calling model %s (max_tokens=%d, temperature=%s)", name, max_tokens, temperature)

    if lowered.startswith("claude"):
        from claude_api_handler import call_claude_api
        return call_claude_api(prompt, name, max_tokens, temperature, system)
    if lowered.startswith(OPENAI_PREFIXES):
        from openai_api_handler import call_openai_api
        return call_openai_api(prompt, name, max_tokens, temperature, system)
    if lowered.startswith("gemini"):
        from gemini_api_handler import call_gemini_api
        return call_gemini_api(prompt, name, max_tokens, temperature, system)
    raise ValueError(f"Unsupported model: {name}")


def _call_model(prompt: str, model: str, temperature: float) -> tuple[str | None, str | None]:
    try:
        return call_model(prompt, model, temperature=temperature, system=SYSTEM), None
    except (RuntimeError, ValueError) as e:
        log.error("Model call failed: %s", e)
        return None, str(e)


def generate_code(prompt: str, model: str | None = None, language: str = "ja") -> dict:
    """One-shot app generation; the result is a single self-contained index.html."""
    used_model = resolve_model(model)
    raw, err = _call_model(build_code_prompt(prompt, language), used_model, settings.CODE_TEMPERATURE)
    if not raw:
        raise CodeGenerationError(f"Code generation failed: {err or 'Unknown error'}")

    try:
        parsed = parse_generated_code(raw)
    except ResponseParseError as e:
        raise CodeGenerationError(f"Code generation failed: {e}") from e

    cleaned = clean_external_references({
        "index.html": parsed["html"],
        "style.css": parsed["css"],
        "script.js": parsed["js"],
    })
    html = embed_files_in_html(cleaned["index.html"], cleaned)

    return {
        "files": {"index.html": html},
        "description": parsed["description"],
        "features": parsed["features"],
        "framework": "Vanilla JavaScript",
        "language": language or "ja",
        "styling": "CSS3",
        "usedModel": used_model,
        "warnings": validate_generated_code(html),
        "raw": raw,
    }


def generate_ui(prompt: str, existing_code: dict | None = None, is_iteration: bool = False,
                model: str | None = None, language: str = "ja") -> dict:
    """Never raises for model or parse problems; a placeholder UI is returned instead."""
    action = "iteration" if is_iteration else "generation"
    raw, err = _call_model(build_ui_prompt(prompt, existing_code, language), model, settings.IMPROVE_TEMPERATURE)
    if not raw:
        log.warning("UI %s fell back after API failure: %s", action, err)
        return generate_fallback_ui(prompt, "Fallback UI placeholder")

    try:
        return parse_ui_response(raw)
    except ResponseParseError as e:
        log.warning("UI %s response could not be parsed: %s", action, e)
        return generate_fallback_ui(prompt)


def _quality_report(original_code: str, files: dict) -> dict:
    improved = "\n".join(v for v in files.values() if isinstance(v, str))
    validation = validate_code_quality(improved)
    return {
        "before": calculate_quality_metrics(original_code),
        "after": calculate_quality_metrics(improved),
        "errors": validation["errors"],
        "warnings": validation["warnings"],
        "suggestions": validation["suggestions"],
        "preservationWarnings": verify_preservation(original_code, files),
    }


def improve_code(original_code: str, improvement_request: str, framework: str = "vanilla",
                 model: str | None = None, language: str = "ja") -> dict:
    used_model = resolve_model(model)
    prompt = build_improvement_prompt(original_code, improvement_request, framework, used_model, language)
    raw, err = _call_model(prompt, used_model, settings.IMPROVE_TEMPERATURE)

    result = None
    if raw:
        try:
            result = extract_and_fix_json(raw, original_code)
        except ResponseParseError as e:
            log.error("Improvement response unusable: %s", e)
    else:
        log.error("Improvement call failed: %s", err)

    if not result or not result.get("files"):
        result = create_fallback_response(framework, used_model, original_code)
        result["fallback"] = True
    else:
        result["fallback"] = False

    result["quality"] = _quality_report(original_code, result["files"])
    result["raw"] = raw or f"Improvement failed: {err or 'unparseable response'}"
    return result


def write_outputs(out_dir: Path, result: dict, raw: str | None = None) -> dict:
    """Persist the raw model answer and every generated file under ``out_dir``."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = {}

    raw_file = out / "raw_response.txt"
    raw_file.write_text(raw or "", "utf-8")
    written["raw"] = str(raw_file)

    for name, content in (result.get("files") or {}).items():
        safe = sanitize_filename(Path(name).name)
        if not safe:
            log.warning("Skipping generated file with unusable name %r", name)
            continue
        target = out / safe
        target.write_text(content, "utf-8")
        written[name] = str(target)

    meta = {k: v for k, v in result.items() if k not in ("files", "raw")}
    (out / "result.json").write_text(json.dumps(meta, ensure_ascii=False, indent=2), "utf-8")
    return written
