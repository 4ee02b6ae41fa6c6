"""JSON validation and canonical pretty-printing.

Both directions walk the document with an explicit stack instead of
recursion, so nesting depth is bounded by MAX_NESTING_DEPTH rather than by
the interpreter's recursion limit.
"""

import json
import math
import re
from json.decoder import scanstring
from json.scanner import NUMBER_RE
from typing import Union

from peer_server.domain.errors import InvalidPayload

JsonValue = Union[
    None, bool, int, float, str, list["JsonValue"], dict[str, "JsonValue"]
]

INDENT = "   "
MAX_NESTING_DEPTH = 10000

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_LITERALS = {"true": True, "false": False, "null": None}
# Escaped surrogates left unpaired after decoding.
_LONE_SURROGATE = re.compile(r"[\ud800-\udfff]")

# Characters escaped inside strings so the output is safe to embed in HTML.
_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _skip_whitespace(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()


def _scan_scalar(text: str, pos: int) -> tuple[JsonValue, int]:
    for literal, value in _LITERALS.items():
        if text.startswith(literal, pos):
            return value, pos + len(literal)
    match = NUMBER_RE.match(text, pos)
    if match is None:
        raise ValueError(f"Expecting value at offset {pos}")
    integer, fraction, exponent = match.groups()
    if not fraction and not exponent:
        return int(integer), match.end()
    number = float(match.group())
    if math.isinf(number):
        raise ValueError(f"number out of range at offset {pos}")
    return number, match.end()


def _scan_key(text: str, pos: int) -> tuple[str, int]:
    if not text.startswith('"', pos):
        raise ValueError(f"Expecting property name at offset {pos}")
    key, pos = scanstring(text, pos + 1, True)
    pos = _skip_whitespace(text, pos)
    if not text.startswith(":", pos):
        raise ValueError(f"Expecting ':' delimiter at offset {pos}")
    return key, _skip_whitespace(text, pos + 1)


def _decode(text: str) -> JsonValue:
    # Open containers, innermost last, and the key pending in each object.
    containers: list[Union[list, dict]] = []
    keys: list[str] = []
    pos = _skip_whitespace(text, 0)
    while True:
        opener = text[pos : pos + 1]
        if opener in ("[", "{"):
            if len(containers) >= MAX_NESTING_DEPTH:
                raise ValueError(f"exceeded max depth at offset {pos}")
            closer = "]" if opener == "[" else "}"
            pos = _skip_whitespace(text, pos + 1)
            if text.startswith(closer, pos):
                value: JsonValue = [] if opener == "[" else {}
                pos += 1
            else:
                if opener == "[":
                    containers.append([])
                    keys.append("")
                else:
                    key, pos = _scan_key(text, pos)
                    containers.append({})
                    keys.append(key)
                continue
        elif opener == '"':
            value, pos = scanstring(text, pos + 1, True)
        else:
            value, pos = _scan_scalar(text, pos)

        # Attach the finished value, closing every container it completes.
        while True:
            pos = _skip_whitespace(text, pos)
            if not containers:
                if pos != len(text):
                    raise ValueError(f"Extra data at offset {pos}")
                return value
            parent = containers[-1]
            if isinstance(parent, list):
                parent.append(value)
            else:
                parent[keys[-1]] = value
            separator = text[pos : pos + 1]
            if separator == ",":
                pos = _skip_whitespace(text, pos + 1)
                if isinstance(parent, dict):
                    keys[-1], pos = _scan_key(text, pos)
                break
            expected = "]" if isinstance(parent, list) else "}"
            if separator != expected:
                raise ValueError(f"Expecting ',' or '{expected}' at offset {pos}")
            pos += 1
            value = containers.pop()
            keys.pop()


def parse_json(payload: bytes) -> JsonValue:
    """Parse ``payload`` into a generic JSON value or raise InvalidPayload."""
    text = payload.decode("utf-8", errors="replace")
    try:
        return _decode(text)
    except ValueError as exc:
        raise InvalidPayload(str(exc)) from exc


def _scalar_text(value: JsonValue) -> str:
    return json.dumps(value, ensure_ascii=False, allow_nan=False)


def serialize_json(value: JsonValue) -> bytes:
    """Serialize ``value`` with sorted keys and a three-space indent."""
    parts: list[str] = []
    # Plain strings are emitted verbatim; (value, depth) pairs still need
    # rendering.
    pending: list[Union[str, tuple[JsonValue, int]]] = [(value, 0)]
    while pending:
        item = pending.pop()
        if isinstance(item, str):
            parts.append(item)
            continue
        node, depth = item
        if isinstance(node, (list, dict)) and node:
            if depth >= MAX_NESTING_DEPTH:
                raise ValueError("exceeded max depth")
            inner = "\n" + INDENT * (depth + 1)
            if isinstance(node, list):
                parts.append("[")
                entries = [(inner, child) for child in node]
                closing = "]"
            else:
                parts.append("{")
                entries = [
                    (inner + _scalar_text(key) + ": ", child)
                    for key, child in sorted(node.items())
                ]
                closing = "}"
            tail: list[Union[str, tuple[JsonValue, int]]] = []
            for index, (prefix, child) in enumerate(entries):
                tail.append(("," if index else "") + prefix)
                tail.append((child, depth + 1))
            tail.append("\n" + INDENT * depth + closing)
            pending.extend(reversed(tail))
        elif isinstance(node, list):
            parts.append("[]")
        elif isinstance(node, dict):
            parts.append("{}")
        else:
            parts.append(_scalar_text(node))

    text = _LONE_SURROGATE.sub("\ufffd", "".join(parts))
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def canonicalize_json(payload: bytes) -> bytes:
    """Return the canonical form of ``payload``; the same input always maps
    to the same output."""
    return serialize_json(parse_json(payload))
