"""Error taxonomy shared by the command engine, the stream decoder and the CLI.

Every error raised on purpose by this project derives from `MtError`, so the
interactive loop can report them uniformly while transport errors (httpx)
keep travelling untouched.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class MtError(Exception):
    """Base class for every error raised by `mt`."""


class ConversionErrorKind(str, Enum):
    FORMAT_MISMATCH = "format_mismatch"
    UNKNOWN_ENUM_VALUE = "unknown_enum_value"


class ConversionError(MtError, ValueError):
    """A raw token could not be converted to the requested type."""

    def __init__(self, kind: ConversionErrorKind, raw: str, target_type: Any) -> None:
        self.kind = kind
        self.raw = raw
        self.target_type = target_type
        type_name = getattr(target_type, "__name__", str(target_type))
        if kind is ConversionErrorKind.UNKNOWN_ENUM_VALUE:
            message = f"'{raw}' is not a valid {type_name} value"
        else:
            message = f"'{raw}' cannot be read as {type_name}"
        super().__init__(message)


class UnsupportedTypeError(MtError, TypeError):
    """A parameter or option declares a type that has no converter."""

    def __init__(self, target_type: Any) -> None:
        self.target_type = target_type
        super().__init__(f"No converter is available for type {target_type!r}")


class BindErrorKind(str, Enum):
    MISSING_POSITIONAL = "missing_positional"
    MISSING_NAMED = "missing_named"
    INVALID_VALUE = "invalid_value"


class BindError(MtError):
    """Invalid arguments: a command parameter could not be bound from the context.

    `parameter` is the Python parameter name; `key` is the positional index or
    the named-argument key the user was expected to supply.
    """

    def __init__(self, kind: BindErrorKind, parameter: str, key: int | str) -> None:
        self.kind = kind
        self.parameter = parameter
        self.key = key
        if kind is BindErrorKind.MISSING_POSITIONAL:
            message = f"Argument {key} ({parameter}) was not provided."
        elif kind is BindErrorKind.MISSING_NAMED:
            message = f"Argument -{key} was not provided."
        else:
            message = f"Invalid value for argument {parameter}"
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.kind is BindErrorKind.INVALID_VALUE and self.__cause__ is not None:
            return f"{base}: {self.__cause__}"
        return base


class InvalidCommandSignature(MtError, TypeError):
    """A command cannot be registered because of how it is declared."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Command '{command}': {reason}")


class UnknownCommandError(MtError, LookupError):
    """The dispatcher received a context for a command that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No command named '{name}' is registered.")


class OptionError(MtError, LookupError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No option named {name} exists.")


class ProtocolErrorKind(str, Enum):
    MISSING_BOUNDARY = "missing_boundary"
    MALFORMED_SECTION = "malformed_section"
    TRUNCATED_SECTION = "truncated_section"


class ProtocolError(MtError):
    """The streamed multipart body cannot be decoded any further."""

    def __init__(self, kind: ProtocolErrorKind, detail: str) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(detail)


class AgentError(MtError):
    """The MTConnect agent failed or answered with an error."""

    def __init__(self, message: str, *, status_code: int | None = None, reason: str | None = None) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(message)


class FilterError(MtError, ValueError):
    """A generic `key=value` filter expression is malformed."""


class RenderError(MtError):
    """The selected output format cannot represent what was asked for."""
