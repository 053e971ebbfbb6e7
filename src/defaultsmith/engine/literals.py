"""Literal default coercion.

Default literals arrive as text and are checked against the declared
parameter type before any code is generated. Parsed values are kept on the
expression so the writer can render them without re-parsing.
"""

from __future__ import annotations

import math
import re

from defaultsmith.engine.model import (
    FLOAT_KINDS,
    INTEGER_KINDS,
    LiteralExpression,
    SemanticType,
    TypeKind,
)
from defaultsmith.exceptions import LiteralError, LiteralErrorKind

NULL_LITERAL = "null"

_INTEGER_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:NaN|Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)
_SUFFIX_RE = re.compile(r"[LlDdFf]$")

_INTEGER_BOUNDS: dict[TypeKind, tuple[int, int]] = {
    TypeKind.BYTE: (-(2**7), 2**7 - 1),
    TypeKind.SHORT: (-(2**15), 2**15 - 1),
    TypeKind.INT: (-(2**31), 2**31 - 1),
    TypeKind.LONG: (-(2**63), 2**63 - 1),
}

_STRING_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\\": "\\\\",
    '"': '\\"',
}


def _escape(ch: str) -> str:
    escaped = _STRING_ESCAPES.get(ch)
    if escaped is not None:
        return escaped
    if ord(ch) < 0x20 or ord(ch) == 0x7F:
        return f"\\x{ord(ch):02x}"
    return ch


def escape_string(value: str) -> str:
    return "".join(_escape(ch) for ch in value)


def escape_char(value: str) -> str:
    if value == "'":
        return "\\'"
    if value == '"':
        return value
    return _escape(value)


def _fail(text: str, semantic_type: SemanticType) -> LiteralError:
    return LiteralError(
        kind=LiteralErrorKind.NOT_PARSEABLE,
        value=text,
        type_name=semantic_type.name,
    )


def _strip_suffix(text: str) -> str:
    return _SUFFIX_RE.sub("", text, count=1)


def _parse_integer(text: str, semantic_type: SemanticType) -> int:
    digits = _strip_suffix(text)
    if not _INTEGER_RE.fullmatch(digits):
        raise _fail(text, semantic_type)
    value = int(digits)
    low, high = _INTEGER_BOUNDS[semantic_type.kind]
    if value < low or value > high:
        raise _fail(text, semantic_type)
    return value


def _parse_float(text: str, semantic_type: SemanticType) -> float:
    digits = _strip_suffix(text)
    if not _FLOAT_RE.fullmatch(digits):
        raise _fail(text, semantic_type)
    if digits.lstrip("+-") == "Infinity":
        return -math.inf if digits.startswith("-") else math.inf
    if digits.lstrip("+-") == "NaN":
        return math.nan
    return float(digits)


def _format_long(text: str) -> str:
    return text if text[-1] in "Ll" else f"{text}L"


def _format_double(text: str) -> str:
    if text[-1] in "Dd":
        return text
    if text.lstrip("+-") in {"NaN", "Infinity"}:
        return text
    if "." in text or "e" in text or "E" in text:
        return text
    return f"{text}.0"


def _format_float(text: str) -> str:
    return text if text[-1] in "Ff" else f"{text}F"


def coerce(text: str, semantic_type: SemanticType) -> LiteralExpression:
    """Validate ``text`` against ``semantic_type`` and build its expression."""
    kind = semantic_type.kind
    if text == NULL_LITERAL:
        if semantic_type.is_primitive:
            raise LiteralError(
                kind=LiteralErrorKind.NULL_ON_PRIMITIVE,
                value=text,
                type_name=semantic_type.name,
            )
        return LiteralExpression(kind=kind, value=None, text=NULL_LITERAL)
    if text == "":
        if kind is not TypeKind.STRING:
            raise LiteralError(
                kind=LiteralErrorKind.EMPTY_NOT_ALLOWED,
                value=text,
                type_name=semantic_type.name,
            )
        return LiteralExpression(kind=kind, value="", text='""')
    if kind in INTEGER_KINDS:
        value = _parse_integer(text, semantic_type)
        if kind is TypeKind.LONG:
            return LiteralExpression(kind=kind, value=value, text=_format_long(text))
        if kind in {TypeKind.BYTE, TypeKind.SHORT}:
            return LiteralExpression(
                kind=kind, value=value, text=_strip_suffix(text), narrowing=kind
            )
        return LiteralExpression(kind=kind, value=value, text=_strip_suffix(text))
    if kind in FLOAT_KINDS:
        value = _parse_float(text, semantic_type)
        if kind is TypeKind.FLOAT:
            return LiteralExpression(kind=kind, value=value, text=_format_float(text))
        return LiteralExpression(kind=kind, value=value, text=_format_double(text))
    if kind is TypeKind.BOOLEAN:
        if text not in {"true", "false"}:
            raise _fail(text, semantic_type)
        return LiteralExpression(kind=kind, value=text == "true", text=text)
    if kind is TypeKind.CHAR:
        if len(text) == 1:
            return LiteralExpression(kind=kind, value=text, text=f"'{escape_char(text)}'")
        return LiteralExpression(kind=kind, value=text, text=text)
    if kind is TypeKind.STRING:
        return LiteralExpression(kind=kind, value=text, text=f'"{escape_string(text)}"')
    return LiteralExpression(kind=kind, value=text, text=text)


def format_literal(value: object, kind: TypeKind) -> str:
    """Render ``value`` as literal text that ``coerce`` accepts for ``kind``."""
    if value is None:
        return NULL_LITERAL
    if kind is TypeKind.BOOLEAN:
        return "true" if value else "false"
    if kind in INTEGER_KINDS:
        return str(int(value))  # type: ignore[call-overload]
    if kind in FLOAT_KINDS:
        number = float(value)  # type: ignore[arg-type]
        if math.isnan(number):
            return "NaN"
        if math.isinf(number):
            return "-Infinity" if number < 0 else "Infinity"
        return repr(number)
    return str(value)


def is_multi_character_char(expression: LiteralExpression) -> bool:
    return (
        expression.kind is TypeKind.CHAR
        and isinstance(expression.value, str)
        and len(expression.value) > 1
    )
