# json_repair.py
"""
Low-level helpers for turning almost-JSON produced by a language model into
something ``json.loads`` accepts.

The repair is a single left-to-right pass that tracks whether it is inside a
string literal, so fixes meant for the structure (trailing commas, bare keys,
comments, template literals) never touch the code carried inside string
values. Input that is already valid JSON comes out unchanged.
"""
import json
import re

from error_handler import ResponseParseError

# Tried in order; the first hit decides where the object starts.
_START_PATTERNS = [
    re.compile(r"```json\s*\{", re.IGNORECASE),
    re.compile(r"```\s*\{"),
    re.compile(r"^\s*\{", re.MULTILINE),
    re.compile(r'\{\s*"files"'),
]

_VALID_ESCAPES = frozenset('"\\/bfnrt')
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")
_BARE_KEY = re.compile(r"[A-Za-z_$][\w$-]*")
_STRING_CONTROL = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\f": "\\f", "\b": "\\b"}
_JSON_WHITESPACE = " \t\n\r"
_CLOSERS = ",}]:"

_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.DOTALL)
_SIMPLE_ESCAPES = {
    "n": "\n", "r": "\r", "t": "\t", "f": "\f", "b": "\b",
    '"': '"', "'": "'", "/": "/", "\\": "\\",
}


def strip_code_fence(s: str) -> str:
    return re.sub(r"^\s*```(?:json)?\s*|\s*```\s*$", "", s, flags=re.IGNORECASE | re.M)


def find_json_start(text: str) -> int:
    for pattern in _START_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.start() + m.group(0).index("{")
    return -1


def find_json_end(text: str, start: int) -> int:
    """Index of the brace closing the object opened at ``start``, or -1."""
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def find_json_object(text: str) -> str:
    start = find_json_start(text)
    if start == -1:
        raise ResponseParseError("JSON start not found")
    end = find_json_end(text, start)
    if end == -1:
        raise ResponseParseError("JSON end not found")
    return text[start:end + 1]


def _skip_ws(text: str, i: int) -> int:
    n = len(text)
    while i < n and text[i] in _JSON_WHITESPACE:
        i += 1
    return i


def _closes_string(text: str, i: int) -> bool:
    # a quote only ends a string when JSON structure follows it
    j = _skip_ws(text, i)
    return j >= len(text) or text[j] in _CLOSERS


def _is_control(ch: str) -> bool:
    code = ord(ch)
    return code < 0x20 or 0x7F <= code <= 0x9F


def repair_json(text: str) -> str:
    out = []
    i, n = 0, len(text)
    in_string = False
    expect_key = False

    while i < n:
        ch = text[i]

        if in_string:
            if ch == "\\":
                nxt = text[i + 1] if i + 1 < n else ""
                if nxt and nxt in _VALID_ESCAPES:
                    out.append(ch + nxt)
                    i += 2
                elif nxt == "u" and _HEX4.match(text, i + 2):
                    out.append(text[i:i + 6])
                    i += 6
                elif nxt == "'":
                    out.append("'")
                    i += 2
                else:
                    out.append("\\\\")
                    i += 1
                continue
            if ch == '"':
                if _closes_string(text, i + 1):
                    out.append('"')
                    in_string = False
                else:
                    out.append('\\"')
                i += 1
                continue
            if ch in _STRING_CONTROL:
                out.append(_STRING_CONTROL[ch])
            elif ord(ch) < 0x20:
                out.append("\\u%04x" % ord(ch))
            else:
                out.append(ch)
            i += 1
            continue

        if ch == '"':
            in_string = True
            expect_key = False
            out.append(ch)
            i += 1
            continue

        if ch == "`":
            end = text.find("`", i + 1)
            if end == -1:
                end = n
            out.append(json.dumps(text[i + 1:end], ensure_ascii=False))
            expect_key = False
            i = end + 1
            continue

        if ch == "/" and text.startswith("//", i):
            nl = text.find("\n", i)
            i = n if nl == -1 else nl
            continue
        if ch == "/" and text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = n if close == -1 else close + 2
            continue

        if ch == ",":
            j = _skip_ws(text, i + 1)
            if j < n and text[j] in "}]":
                i += 1
                continue
            out.append(ch)
            expect_key = True
            i += 1
            continue

        if ch == "{":
            out.append(ch)
            expect_key = True
            i += 1
            continue

        if ch in _JSON_WHITESPACE:
            out.append(ch)
            i += 1
            continue

        if _is_control(ch):
            i += 1
            continue

        if expect_key:
            m = _BARE_KEY.match(text, i)
            if m:
                j = _skip_ws(text, m.end())
                if j < n and text[j] == ":":
                    out.append('"%s"' % m.group(0))
                    expect_key = False
                    i = m.end()
                    continue

        expect_key = False
        out.append(ch)
        i += 1

    if in_string:
        out.append('"')
    return "".join(out)


def loads_repaired(text: str):
    """``json.loads`` with a repair pass when the first attempt fails."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return json.loads(repair_json(text))


def unescape_string(s: str) -> str:
    def _decode(m: re.Match) -> str:
        token = m.group(1)
        if len(token) > 1:
            return chr(int(token[1:], 16))
        return _SIMPLE_ESCAPES.get(token, "\\" + token)

    return _ESCAPE_RE.sub(_decode, s)
