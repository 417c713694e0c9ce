"""Conversion of raw command-line tokens to typed values.

The set of supported target types is closed: `str`, `int`, `UInt64`, `bool`,
any `Enum` subclass, and the nullable form (`X | None`) of each of them.
`resolve` is meant to run at registration time so an unsupported type is
reported before any command executes.
"""

from __future__ import annotations

import re
import types
import typing
from enum import Enum, EnumMeta
from typing import Any, Callable, NewType, Union

from core.errors import ConversionError, ConversionErrorKind, UnsupportedTypeError

UInt64 = NewType("UInt64", int)

Converter = Callable[[str], Any]

_INTEGER_RE = re.compile(r"^\s*[+-]?\d+\s*$")
_UNSIGNED_RE = re.compile(r"^\s*\+?\d+\s*$")
_UINT64_MAX = 2**64 - 1


def _to_str(raw: str) -> str:
    return raw


def _to_int(raw: str) -> int:
    if not _INTEGER_RE.match(raw):
        raise ConversionError(ConversionErrorKind.FORMAT_MISMATCH, raw, int)
    return int(raw)


def _to_uint64(raw: str) -> int:
    if not _UNSIGNED_RE.match(raw):
        raise ConversionError(ConversionErrorKind.FORMAT_MISMATCH, raw, UInt64)
    value = int(raw)
    if value > _UINT64_MAX:
        raise ConversionError(ConversionErrorKind.FORMAT_MISMATCH, raw, UInt64)
    return value


def _to_bool(raw: str) -> bool:
    text = raw.strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ConversionError(ConversionErrorKind.FORMAT_MISMATCH, raw, bool)


_SCALAR_CONVERTERS: dict[Any, Converter] = {
    str: _to_str,
    int: _to_int,
    UInt64: _to_uint64,
    bool: _to_bool,
}


def unwrap_optional(target_type: Any) -> tuple[Any, bool]:
    """Return `(underlying_type, nullable)` for `X | None` / `Optional[X]`."""

    origin = typing.get_origin(target_type)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(target_type) if arg is not type(None)]
        if len(members) == 1:
            return members[0], True
    return target_type, False


def _enum_converter(enum_type: type[Enum]) -> Converter:
    by_name = {member.name.casefold(): member for member in enum_type}

    def convert(raw: str) -> Enum:
        member = by_name.get(raw.strip().casefold())
        if member is None:
            raise ConversionError(ConversionErrorKind.UNKNOWN_ENUM_VALUE, raw, enum_type)
        return member

    return convert


def resolve(target_type: Any) -> Converter:
    """Look up the converter for `target_type`, raising `UnsupportedTypeError` when none exists."""

    underlying, _ = unwrap_optional(target_type)
    if isinstance(underlying, EnumMeta):
        return _enum_converter(underlying)
    try:
        return _SCALAR_CONVERTERS[underlying]
    except (KeyError, TypeError):
        raise UnsupportedTypeError(target_type) from None


def convert(raw: str, target_type: Any) -> Any:
    return resolve(target_type)(raw)


def type_label(target_type: Any) -> str:
    underlying, nullable = unwrap_optional(target_type)
    name = getattr(underlying, "__name__", str(underlying))
    return f"{name}?" if nullable else name
