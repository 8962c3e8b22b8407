"""Repair and parse JSON emitted by a language model.

The model writes prose-heavy JSON: narrative fields contain literal newlines,
quoted speech leaves unescaped `"` inside values, and long answers get cut
off mid-object. `JsonRepairer.repair` turns that into parsed data and never
raises; unrecoverable input degrades to `{}` with one warning line.

The embedded-quote rule is a heuristic. A quote inside a string is taken as
the terminator when what follows looks like JSON structure (`,` `}` `]` `:`
or a `"key":` pattern); otherwise, if what follows reads like text, it is
escaped. Some inputs are genuinely ambiguous and will be misread.
"""

from __future__ import annotations

import json
import re
from typing import Any

from core.interfaces.reporter import LoggingReporter, Reporter

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_OBJECT_RE = re.compile(r"(\{[\s\S]*\})")

_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_END_COMMA_RE = re.compile(r",\s*\Z")

_STRUCTURE_FOLLOWS_RE = re.compile(r"\s*[,}\]:]")
_KEY_FOLLOWS_RE = re.compile(r'\s*,?\s*"[^"]+"\s*:')
_TEXT_FOLLOWS_RE = re.compile(r"[a-zA-Z0-9\s,.'!?;:\-]")

_DANGLING_STRING_RE = re.compile(r',?\s*"[^"]*\Z')
_DANGLING_KEY_RE = re.compile(r',?\s*"[^"]*"\s*:\s*\Z')

_VALID_ESCAPES = frozenset('"\\/bfnrt')
_UNICODE_ESCAPE_RE = re.compile(r"u[0-9a-fA-F]{4}")
_CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\f": "\\f",
    "\b": "\\b",
}
_TYPOGRAPHIC_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})

_PREVIEW_CHARS = 500


def extract_json_candidate(text: str) -> str:
    """First fenced code-block body, else the outermost `{...}` span, else the text.

    A text that is already a bare array is returned as is.
    """

    fence = _FENCE_RE.search(text)
    if fence:
        return fence.group(1)
    if text.lstrip().startswith("["):
        return text.strip()
    match = _OBJECT_RE.search(text)
    return match.group(1) if match else text


def normalize_json_text(text: str) -> str:
    text = text.translate(_TYPOGRAPHIC_QUOTES)
    text = _TRAILING_COMMA_RE.sub(r"\1", text)
    text = _END_COMMA_RE.sub("", text)
    return text


def looks_like_embedded_quote(text: str, pos: int) -> bool:
    """Whether the `"` at `pos` (inside a string) is part of the text."""

    if pos + 1 >= len(text):
        return False
    remaining = text[pos + 1 :]
    if _STRUCTURE_FOLLOWS_RE.match(remaining):
        return False
    if _KEY_FOLLOWS_RE.match(remaining):
        return False
    return bool(_TEXT_FOLLOWS_RE.match(remaining))


def escape_string_contents(text: str) -> str:
    """Single pass over `text` fixing what a strict parser rejects inside strings."""

    out: list[str] = []
    in_string = False
    escape_next = False

    for i, char in enumerate(text):
        if escape_next:
            out.append(char)
            escape_next = False
        elif char == "\\":
            if not in_string:
                out.append(char)
                escape_next = True
            elif text[i + 1 : i + 2] in _VALID_ESCAPES or _UNICODE_ESCAPE_RE.match(text, i + 1):
                out.append(char)
                escape_next = True
            else:
                out.append("\\\\")
        elif char == '"':
            if not in_string:
                out.append(char)
                in_string = True
            elif looks_like_embedded_quote(text, i):
                out.append('\\"')
            else:
                out.append(char)
                in_string = False
        elif in_string and char in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[char])
        elif in_string and ord(char) < 0x20:
            out.append(f"\\u{ord(char):04x}")
        else:
            out.append(char)

    return "".join(out)


def _scan_structure(text: str) -> tuple[list[str], bool]:
    """Open `{`/`[` still pending at the end of `text`, and whether it ends inside a string."""

    stack: list[str] = []
    in_string = False
    escape_next = False
    for char in text:
        if escape_next:
            escape_next = False
            continue
        if char == "\\" and in_string:
            escape_next = True
        elif char == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif char in "{[":
            stack.append(char)
        elif char in "}]":
            if not stack:
                # More closers than openers: not a truncation.
                return ["!"], in_string
            stack.pop()
    return stack, in_string


def close_truncated(text: str) -> str | None:
    """Close a response that was cut off mid-object.

    Returns the repaired text, or None when there is nothing sensible to do.
    """

    if not text or not text.strip():
        return None

    stack, in_string = _scan_structure(text)
    repaired = text
    if in_string:
        repaired = _DANGLING_STRING_RE.sub("", repaired, count=1)
        repaired = _DANGLING_KEY_RE.sub("", repaired, count=1)
        stack, in_string = _scan_structure(repaired)
        if in_string:
            return None

    if "!" in stack:
        return None

    repaired = _END_COMMA_RE.sub("", repaired.rstrip())
    repaired = _DANGLING_KEY_RE.sub("", repaired)
    closers = {"{": "}", "[": "]"}
    repaired += "".join(closers[opener] for opener in reversed(stack))

    return repaired if repaired != text else None


class JsonRepairer:
    """Turns model text into parsed JSON. Never raises."""

    def __init__(self, reporter: Reporter | None = None) -> None:
        self._reporter = reporter or LoggingReporter("JsonRepairer")

    def sanitize(self, raw_text: str) -> str:
        candidate = extract_json_candidate(raw_text)
        candidate = normalize_json_text(candidate)
        candidate = escape_string_contents(candidate)
        return _END_COMMA_RE.sub("", candidate.strip())

    def repair(self, raw_text: object) -> dict[str, Any] | list[Any]:
        if not isinstance(raw_text, str) or not raw_text.strip():
            return {}

        text = self.sanitize(raw_text)
        try:
            return self._accept(json.loads(text), raw_text)
        except json.JSONDecodeError as exc:
            error = exc

        closed = close_truncated(text)
        if closed is not None:
            try:
                return self._accept(json.loads(closed), raw_text)
            except json.JSONDecodeError:
                pass

        self._reporter.warning(
            "Failed to parse model response",
            error=str(error),
            preview=raw_text[:_PREVIEW_CHARS],
        )
        return {}

    def _accept(self, data: Any, raw_text: str) -> dict[str, Any] | list[Any]:
        if isinstance(data, (dict, list)):
            return data
        self._reporter.warning(
            "Model response is not a JSON object or array",
            preview=raw_text[:_PREVIEW_CHARS],
        )
        return {}


def repair_json(raw_text: object) -> dict[str, Any] | list[Any]:
    """Convenience wrapper with the default reporter."""

    return JsonRepairer().repair(raw_text)
