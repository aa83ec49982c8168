# code_quality.py
"""Static heuristics over generated code: validation findings and 0-100 quality scores."""
import re

from bs4 import BeautifulSoup

VOID_TAGS = {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}

SECURITY_PATTERNS = [
    (re.compile(r"eval\s*\("), "eval() is dangerous"),
    (re.compile(r"innerHTML\s*="), "Check XSS protection when assigning innerHTML"),
    (re.compile(r"document\.write\s*\("), "document.write() is not recommended"),
    (re.compile(r"onclick\s*=", re.IGNORECASE), "Prefer addEventListener over inline event handlers"),
]

_TAG = re.compile(r"<(/?)([a-zA-Z][\w-]*)[^>]*?(/?)>")
_UNIVERSAL_SELECTOR = re.compile(r"(?:^|[\s,>])\*\s*\{", re.MULTILINE)
_DEEP_SELECTOR = re.compile(r"^\s*[\w.#-]+(?:\s+[\w.#:-]+){3,}\s*\{", re.MULTILINE)
_FUNCTION_NAMES = re.compile(
    r"function\s+([A-Za-z_$][\w$]*)"
    r"|(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s*)?(?:function\b|\([^)]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>)"
)
_CSS_CLASS = re.compile(r"(?:^|(?<=[\s,>+~}]))\.(-?[_a-zA-Z][\w-]*)(?=[^{};()'\"]*\{)", re.MULTILINE)
_CLASS_ATTR = re.compile(r"class\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_EVENTS = re.compile(r"addEventListener\s*\(\s*[\"'](\w+)[\"']|\bon(\w+)\s*=", re.IGNORECASE)
_STYLE_SELECTOR = re.compile(r"([^{}]+)\{[^{}]*\}")
_BRANCHES = re.compile(r"\b(?:if|else|while|for|switch|case)\b|\?")
_COMMENTS = re.compile(r"//|/\*|\*/|<!--")


def _clamp(score: float) -> int:
    return int(round(max(0, min(100, score))))


def find_unclosed_tags(html: str) -> list[str]:
    stack, unclosed = [], []
    for closing, tag, self_closing in _TAG.findall(html):
        tag = tag.lower()
        if self_closing or tag in VOID_TAGS:
            continue
        if closing:
            if stack and stack[-1] == tag:
                stack.pop()
            else:
                unclosed.append(tag)
        else:
            stack.append(tag)
    return unclosed + stack


def _unique(items):
    return list(dict.fromkeys(i for i in items if i))


def extract_preserved_elements(code: str) -> dict:
    functions = _unique(a or b for a, b in _FUNCTION_NAMES.findall(code))
    classes = _CSS_CLASS.findall(code)
    for attr in _CLASS_ATTR.findall(code):
        classes.extend(attr.split())
    events = _unique((a or b).lower() for a, b in _EVENTS.findall(code))
    styles = _unique(s.strip() for s in _STYLE_SELECTOR.findall(code) if not s.strip().startswith(("@", "/*")))
    return {"functions": functions, "classes": _unique(classes), "events": events, "styles": styles}


def _check_accessibility(code: str, result: dict) -> None:
    if "<" not in code:
        return
    soup = BeautifulSoup(code, "lxml")
    if any(img.get("alt") is None for img in soup.find_all("img")):
        result["suggestions"].append("Add alt attributes to images")

    labelled = {lbl.get("for") for lbl in soup.find_all("label") if lbl.get("for")}
    for inp in soup.find_all(["input", "textarea", "select"]):
        if inp.get("type") in ("hidden", "submit", "button"):
            continue
        if not (inp.get("aria-label") or inp.get("id") in labelled or inp.find_parent("label")):
            result["suggestions"].append("Add labels to form controls")
            break

    for btn in soup.find_all("button"):
        if not (btn.get_text(strip=True) or btn.get("aria-label")):
            result["suggestions"].append("Give buttons descriptive text")
            break


def validate_code_quality(code: str) -> dict:
    result = {
        "is_valid": True,
        "errors": [],
        "warnings": [],
        "suggestions": [],
        "preserved_elements": {"functions": [], "classes": [], "events": [], "styles": []},
    }

    if "<html" in code or "<!DOCTYPE" in code:
        unclosed = find_unclosed_tags(code)
        if unclosed:
            result["warnings"].append(f"Unclosed HTML tags: {', '.join(unclosed)}")

    if "{" in code and "}" in code and code.count("{") != code.count("}"):
        result["errors"].append("Curly braces are not balanced")

    if "function" in code or "=>" in code or "const " in code:
        if code.count("(") != code.count(")"):
            result["errors"].append("JavaScript parentheses are not balanced")

    for pattern, message in SECURITY_PATTERNS:
        if pattern.search(code):
            result["warnings"].append(message)

    if len(code) > 100_000:
        result["warnings"].append("Code is very large, consider splitting it")
    if _UNIVERSAL_SELECTOR.search(code) or _DEEP_SELECTOR.search(code):
        result["suggestions"].append("Consider optimising CSS selectors")

    _check_accessibility(code, result)
    result["preserved_elements"] = extract_preserved_elements(code)
    result["is_valid"] = not result["errors"]
    return result


def calculate_quality_metrics(code: str) -> dict:
    validation = validate_code_quality(code)
    lines = code.split("\n")

    complexity = 100 - len(_BRANCHES.findall(code)) * 2

    maintainability = (
        100
        - len(validation["errors"]) * 20
        - len(validation["warnings"]) * 10
        - max(0, len(code) - 10_000) / 1000
    )

    avg_line = sum(len(ln) for ln in lines) / len(lines)
    comment_ratio = len(_COMMENTS.findall(code)) / len(lines)
    readability = 100 - max(0, avg_line - 80) * 0.5 + comment_ratio * 20

    performance = 100
    if "document.write" in code:
        performance -= 20
    if "eval(" in code:
        performance -= 30
    if len(re.findall(r"for\s*\(", code)) > 5:
        performance -= 10

    accessibility = 100
    img_tags = len(re.findall(r"<img\b", code, re.IGNORECASE))
    if img_tags:
        with_alt = len(re.findall(r"<img\b[^>]*\balt\s*=", code, re.IGNORECASE))
        accessibility = with_alt / img_tags * 100

    security_hits = [w for w in validation["warnings"] if "eval" in w or "innerHTML" in w or "XSS" in w]
    security = 100 - len(security_hits) * 15

    return {
        "complexity": _clamp(complexity),
        "maintainability": _clamp(maintainability),
        "readability": _clamp(readability),
        "performance": _clamp(performance),
        "accessibility": _clamp(accessibility),
        "security": _clamp(security),
    }


def verify_preservation(original: str, improved_files: dict) -> list[str]:
    """Warn about functions and CSS classes of the original that disappeared."""
    if not original:
        return []
    improved = "\n".join(v for v in improved_files.values() if isinstance(v, str))
    elements = extract_preserved_elements(original)
    warnings = []
    for name in elements["functions"]:
        if not re.search(rf"\b{re.escape(name)}\b", improved):
            warnings.append(f"Function '{name}' from the original code is missing")
    for cls in elements["classes"]:
        if cls not in improved:
            warnings.append(f"CSS class '{cls}' from the original code is missing")
    return warnings
