# prompts.py
import json

from response_parser import parse_existing_code

SYSTEM = (
    "You are a world-class front-end developer. You write complete, working HTML, CSS and "
    "vanilla JavaScript that runs inside a sandboxed iframe with no build step."
)

_LANGUAGE_NOTE = {
    "ja": "Write every human-readable text (UI labels, description) in Japanese.",
    "en": "Write every human-readable text (UI labels, description) in English.",
}

_UI_OUTPUT_FORMAT = (
    "## OUTPUT FORMAT\n"
    "Return ONLY the following JSON object, no prose. The js field must never be empty:\n\n"
    "{\n"
    '  "html": "<!DOCTYPE html>\\n<html>\\n...",\n'
    '  "css": "/* Tailwind CSS classes + custom styles */\\n...",\n'
    '  "js": "// working JavaScript\\ndocument.addEventListener(\'DOMContentLoaded\', function() {\\n  ...\\n});",\n'
    '  "description": "what the UI does"\n'
    "}"
)


def _language_note(language: str) -> str:
    return _LANGUAGE_NOTE.get(language, _LANGUAGE_NOTE["en"])


def build_ui_prompt(user_prompt: str, existing_code: dict | None = None, language: str = "ja") -> str:
    existing_code = existing_code or {}
    if any(existing_code.get(k) for k in ("html", "css", "js")):
        return (
            "Improve the existing UI code below.\n\n"
            "## EXISTING CODE\n"
            f"### HTML\n```html\n{existing_code.get('html') or ''}\n```\n\n"
            f"### CSS\n```css\n{existing_code.get('css') or ''}\n```\n\n"
            f"### JavaScript\n```javascript\n{existing_code.get('js') or ''}\n```\n\n"
            f"## CHANGE REQUEST\n{user_prompt}\n\n"
            "## REQUIREMENTS\n"
            "- HTML: keep the existing structure, apply the requested changes, semantic and accessible, "
            "ids/classes the script can target\n"
            "- CSS: Tailwind CDN classes plus custom styles, responsive\n"
            "- JavaScript: keep existing behaviour, add the new behaviour, handle errors. "
            "It must contain real working functionality.\n"
            f"- {_language_note(language)}\n\n"
            + _UI_OUTPUT_FORMAT
        )

    return (
        "Build a high-quality, interactive UI for the request below.\n\n"
        f"## REQUEST\n{user_prompt}\n\n"
        "## JAVASCRIPT IS MANDATORY\n"
        "Even a static-looking UI needs interaction: clicks, form handling, DOM updates, "
        "animations, modals, local storage or live counters.\n\n"
        "## REQUIREMENTS\n"
        "- HTML: semantic, accessible, interactive elements with ids/classes for the script\n"
        "- CSS: Tailwind CDN classes plus custom styles, responsive, hover effects\n"
        "- JavaScript: vanilla JS only\n"
        f"- {_language_note(language)}\n\n"
        + _UI_OUTPUT_FORMAT
    )


def build_code_prompt(user_prompt: str, language: str = "ja") -> str:
    return (
        "Act as a code-generation engine that produces a complete single-page application.\n\n"
        "## HARD REQUIREMENTS\n"
        "1) No JavaScript syntax errors\n"
        "2) Valid JSON output only\n"
        "3) No external dependencies: no CDN, libraries or web fonts\n"
        "4) Must run inside an iframe\n"
        "5) Escape newlines as \\n and double quotes as \\\" inside JSON strings\n\n"
        f"## REQUEST\n{user_prompt}\n\n"
        "## QUALITY\n"
        "- every feature works, errors and edge cases are handled\n"
        "- clean, responsive, accessible design with smooth micro-interactions\n"
        "- HTML5, modern JavaScript and CSS3\n"
        f"- {_language_note(language)}\n\n"
        "## OUTPUT\n"
        "```json\n"
        "{\n"
        '  "html": "complete working HTML",\n'
        '  "css": "optimised CSS",\n'
        '  "js": "error-free JavaScript",\n'
        '  "description": "what the app does",\n'
        '  "features": ["main features"]\n'
        "}\n"
        "```"
    )


def build_improvement_prompt(original_code: str, improvement_request: str, framework: str,
                             model: str, language: str = "ja") -> str:
    existing = parse_existing_code(original_code)
    files_info = ""
    if existing:
        files_info = "\n\n## FILES THAT MUST BE PRESERVED\n" + "\n".join(
            f"- {name}: {len(content)} characters (keep in full)" for name, content in existing.items()
        )

    description = (
        "既存機能を100%保持し、新機能を追加しました" if language == "ja"
        else "Existing features 100% preserved, new features added"
    )
    instructions = (
        "既存の全機能がそのまま利用でき、さらに新機能も利用可能です" if language == "ja"
        else "All existing features remain intact, plus new features are available"
    )
    example = {
        "files": {
            "index.html": "<full existing HTML>\n\n<!-- ===== added ===== -->\n<new HTML elements>",
            "styles.css": "/* ===== existing CSS ===== */\n<full existing CSS>\n\n/* ===== added ===== */\n<new CSS>",
            "script.js": "// ===== existing JavaScript =====\n<full existing JS>\n\n// ===== added =====\n<new JS>",
        },
        "description": description,
        "instructions": instructions,
        "framework": framework,
        "language": "javascript",
        "styling": "css",
        "usedModel": model,
        "preservedExisting": True,
    }

    return (
        "Improve the existing code below.\n\n"
        "## FORBIDDEN\n"
        "1) Deleting, changing or replacing any existing code\n"
        "2) Refactoring or \"optimising\" existing code\n"
        "3) Rewriting the existing HTML structure, CSS or JavaScript\n"
        "4) Shortening or omitting parts of existing files\n\n"
        "## ALLOWED\n"
        "- Appending new features and styles after the existing code\n\n"
        f"## EXISTING CODE (PROTECTED)\n{original_code}{files_info}\n\n"
        f"## IMPROVEMENT REQUEST\n{improvement_request}\n\n"
        "## RULES\n"
        "1) Keep every existing character\n"
        "2) Add new code at the end only\n"
        "3) Existing features must keep working\n"
        "4) Result = existing + new\n\n"
        "## OUTPUT FORMAT\n"
        "Return ONLY this JSON object, no prose. Include the existing code in full, then the additions.\n"
        "Escape newlines as \\n, double quotes as \\\" and backslashes as \\\\.\n\n"
        + json.dumps(example, ensure_ascii=False, indent=2)
    )
