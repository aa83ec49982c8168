# html_assembler.py
"""
Turns a generated file set into something a preview iframe can render on its
own: relative <link>/<script src> references are removed and the CSS/JS files
are embedded into index.html.
"""
import re

from fallbacks import generate_safe_css, generate_safe_html, generate_safe_js

IMPROVEMENT_MARKERS = {
    "css": "/* Added by improvement */",
    "js": "// Added by improvement",
    "html": "<!-- Added by improvement -->",
}

_ABSOLUTE_URL = re.compile(r"^(?:[a-z][a-z0-9+.-]*:|//)", re.IGNORECASE)
_LINK_TAG = re.compile(r"<link\b[^>]*>", re.IGNORECASE)
_SCRIPT_SRC_TAG = re.compile(r"<script\b[^>]*\bsrc\s*=[^>]*>(?:\s*</script\s*>)?", re.IGNORECASE)
_ATTR = r"\b{name}\s*=\s*[\"']?([^\"'\s>]*)"
_ASSET_EXT = re.compile(
    r"\.(?:css|js|ico|png|jpe?g|gif|svg|webp|woff2?|ttf|eot)(?:[?#].*)?$", re.IGNORECASE
)

_DOCTYPE = re.compile(r"^\s*<!doctype[^>]*>\s*", re.IGNORECASE)
_HTML_OPEN = re.compile(r"<html\b[^>]*>", re.IGNORECASE)
_HEAD_OPEN = re.compile(r"<head\b[^>]*>", re.IGNORECASE)
_BODY_OPEN = re.compile(r"<body\b[^>]*>", re.IGNORECASE)

_DEFAULT_HEAD = (
    "<head>\n"
    '    <meta charset="UTF-8">\n'
    '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
    "    <title>Application</title>\n"
    "</head>\n"
)

# Content that looks like a JSON payload or a parser error, not a script
_NOT_JS_PATTERNS = [
    re.compile(r"SyntaxError", re.IGNORECASE),
    re.compile(r"Unexpected token", re.IGNORECASE),
    re.compile(r"Invalid character", re.IGNORECASE),
    re.compile(r"Unterminated string", re.IGNORECASE),
    re.compile(r"^\s*[\{\[]"),
    re.compile(r'^\s*"[^"]*":\s*"'),
]
_JS_HINTS = ("function", "const ", "let ", "var ", "class ", "document.", "console.", "addEventListener")


def _attr(tag: str, name: str) -> str | None:
    m = re.search(_ATTR.format(name=name), tag, re.IGNORECASE)
    return m.group(1) if m else None


def _is_relative(url: str | None) -> bool:
    return bool(url) and not _ABSOLUTE_URL.match(url)


def _strip_relative_links(m: re.Match) -> str:
    tag = m.group(0)
    href = _attr(tag, "href")
    if not _is_relative(href):
        return tag
    rel = (_attr(tag, "rel") or "").lower()
    if rel == "stylesheet" or _ASSET_EXT.search(href):
        return ""
    return tag


def _strip_relative_scripts(m: re.Match) -> str:
    tag = m.group(0)
    return "" if _is_relative(_attr(tag, "src")) else tag


def clean_external_references(files: dict) -> dict:
    """Drop references to sibling files; absolute and CDN URLs are kept."""
    cleaned = dict(files)
    for name, content in files.items():
        if not name.endswith(".html") or not isinstance(content, str):
            continue
        html = _LINK_TAG.sub(_strip_relative_links, content)
        html = _SCRIPT_SRC_TAG.sub(_strip_relative_scripts, html)
        cleaned[name] = html
    return cleaned


def _embeddable_part(content: str, html: str, kind: str) -> str:
    """Portion of a css/js file that index.html does not carry yet."""
    body = content.strip()
    if not body or body in html:
        return ""
    marker = IMPROVEMENT_MARKERS[kind]
    if marker in content:
        head, _, tail = content.rpartition(marker)
        if head.strip() and head.strip() in html:
            return tail.strip()
    return body


def _collect(html: str, files: dict, suffix: str, kind: str) -> str:
    chunks = []
    for name, content in files.items():
        if not name.endswith(suffix) or not isinstance(content, str):
            continue
        part = _embeddable_part(content, html, kind)
        if part:
            chunks.append(f"\n/* ===== {name} ===== */\n{part}\n")
    return "".join(chunks)


def embed_files_in_html(html: str, files: dict) -> str:
    css = _collect(html, files, ".css", "css")
    if css.strip():
        style = f"\n    <style>{css}    </style>\n"
        m = re.search(r"</head\s*>", html, re.IGNORECASE)
        if m:
            html = html[:m.start()] + style + html[m.start():]
        else:
            body = _BODY_OPEN.search(html)
            if body:
                html = html[:body.start()] + f"<head>{style}</head>\n" + html[body.start():]
            else:
                html = style.lstrip("\n") + html

    js = _collect(html, files, ".js", "js")
    if js.strip():
        script = f"\n    <script>{js}    </script>\n"
        idx = html.lower().rfind("</body")
        if idx != -1:
            html = html[:idx] + script + html[idx:]
        else:
            html += script
    return html


def ensure_complete_html(content: str) -> str:
    html = _DOCTYPE.sub("", content.strip(), count=1)

    if not _HTML_OPEN.search(html):
        if not _BODY_OPEN.search(html):
            html = f"<body>\n{html}\n</body>"
        head = "" if _HEAD_OPEN.search(html) else _DEFAULT_HEAD
        html = f'<html lang="en">\n{head}{html}\n</html>'
    else:
        if not _HEAD_OPEN.search(html):
            html = _HTML_OPEN.sub(lambda m: m.group(0) + "\n" + _DEFAULT_HEAD.rstrip("\n"), html, count=1)
        if not _BODY_OPEN.search(html):
            close_head = re.search(r"</head\s*>", html, re.IGNORECASE)
            pos = close_head.end() if close_head else _HTML_OPEN.search(html).end()
            html = html[:pos] + "\n<body>" + html[pos:]

    if not re.search(r"</body\s*>", html, re.IGNORECASE):
        idx = html.lower().rfind("</html")
        html = html[:idx] + "</body>\n" + html[idx:] if idx != -1 else html + "\n</body>"
    if not re.search(r"</html\s*>", html, re.IGNORECASE):
        html += "\n</html>"
    return "<!DOCTYPE html>\n" + html


def ensure_complete_js(content: str) -> str:
    js = content
    if any(p.search(js) for p in _NOT_JS_PATTERNS):
        return generate_safe_js()

    missing_braces = js.count("{") - js.count("}")
    missing_parens = js.count("(") - js.count(")")
    if missing_braces > 0:
        js += "\n" + "}" * missing_braces
    if missing_parens > 0:
        js += ")" * missing_parens

    if not any(h in js for h in _JS_HINTS) and len(js.strip()) < 100:
        return generate_safe_js()
    return js


def ensure_complete_css(content: str) -> str:
    missing = content.count("{") - content.count("}")
    return content + "\n" + "}" * missing if missing > 0 else content


def ensure_required_files(files: dict) -> dict:
    """Complete every file by type and add a safe starter for anything missing."""
    out = {}
    for name, content in files.items():
        if not isinstance(content, str) or not content.strip():
            continue
        if name.endswith(".html"):
            content = ensure_complete_html(content)
        elif name.endswith(".js"):
            content = ensure_complete_js(content)
        elif name.endswith(".css"):
            content = ensure_complete_css(content)
        out[name] = content

    if "index.html" not in out:
        out["index.html"] = generate_safe_html()
    if "script.js" not in out:
        out["script.js"] = generate_safe_js()
    if "styles.css" not in out and "style.css" not in out:
        out["styles.css"] = generate_safe_css()

    out["index.html"] = embed_files_in_html(out["index.html"], out)
    return out


def inline_preview_html(html: str, css: str = "", js: str = "") -> str:
    """Return HTML with CSS/JS inlined so the preview iframe renders correctly."""
    if not html:
        return "<!doctype html><html><body><h3>No HTML generated.</h3></body></html>"

    # skip whatever index.html already embeds
    css = _embeddable_part(css or "", html, "css")
    js = _embeddable_part(js or "", html, "js")

    html_inlined = html
    if css.strip():
        # 1) Replace any <link ... href="style.css"> (self-closing tolerated)
        html_inlined = re.sub(
            r"<link[^>]*href=[\"']?styles?\.css[\"']?[^>]*\/?>",
            lambda m: f"<style>{css}</style>",
            html,
            flags=re.IGNORECASE,
        )
        # 2) If nothing replaced, inject before </head>
        if html_inlined == html:
            if re.search(r"</head>", html, re.IGNORECASE):
                html_inlined = re.sub(
                    r"</head>", lambda m: f"<style>{css}</style></head>", html, count=1, flags=re.IGNORECASE
                )
            elif _HTML_OPEN.search(html):
                # 3) No <head>, create one inside <html>
                html_inlined = _HTML_OPEN.sub(
                    lambda m: m.group(0) + f"\n<head><style>{css}</style></head>", html, count=1
                )
            else:
                html_inlined = f"<html><head><style>{css}</style></head>{html}</html>"

    if js.strip():
        before = html_inlined
        html_inlined = re.sub(
            r"<script[^>]*src=[\"']?scripts?\.js[\"']?[^>]*>\s*</script>",
            lambda m: f"<script>{js}</script>",
            html_inlined,
            flags=re.IGNORECASE,
        )
        if html_inlined == before:
            idx = html_inlined.lower().rfind("</body>")
            if idx != -1:
                html_inlined = html_inlined[:idx] + f"<script>{js}</script>" + html_inlined[idx:]
            else:
                html_inlined += f"<script>{js}</script>"

    return html_inlined


def validate_generated_code(html: str) -> list[str]:
    warnings = []
    if "http://" in html or "https://" in html:
        warnings.append("External URLs detected - may not work in iframe")
    if "<!DOCTYPE html>" not in html:
        warnings.append("Missing DOCTYPE declaration")
    if "<html>" not in html and "<html " not in html:
        warnings.append("Missing HTML tag")
    if "console.error" in html or "throw new Error" in html:
        warnings.append("Code contains error handling - review for production use")
    return warnings
