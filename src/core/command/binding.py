"""Parameter binding strategies.

A command parameter is bound in exactly one of four ways:

- `FromContext()`: receives the `Context` itself (cancellation, options).
- `Positional(index)`: the token at `index` after the command name.
- `Named(key, optional=True)`: the value of `-key value`; when optional and
  absent, the sentinel `MISSING` is produced so the command keeps its own
  default.
- `NamedRequired(key)`: like `Named` but absence is an error. Parameters with
  no marker at all are bound this way, keyed by their own name.

Markers are attached either through `typing.Annotated` metadata on a
decorated method (see `core.command.decorators`) or handed explicitly to
`CommandRegistry.add`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from core.command import converters
from core.command.context import Context
from core.errors import BindError, BindErrorKind, ConversionError


class _Missing:
    """Sentinel for an optional named argument the user did not supply."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True)
class FromContext:
    pass


@dataclass(frozen=True)
class Positional:
    index: int
    label: str | None = None


@dataclass(frozen=True)
class Named:
    key: str | None = None
    optional: bool = True


@dataclass(frozen=True)
class NamedRequired:
    key: str | None = None


Binding = Union[FromContext, Positional, Named, NamedRequired]
BINDING_TYPES = (FromContext, Positional, Named, NamedRequired)


@dataclass(frozen=True)
class ParameterSpec:
    """One bound parameter of a command.

    `name` is the keyword the target callable is invoked with. The converter
    is looked up when the spec is built, so an unsupported `target_type`
    fails at registration.
    """

    name: str
    binding: Binding
    target_type: Any = str
    converter: converters.Converter | None = field(default=None, compare=False, repr=False)

    @classmethod
    def build(cls, name: str, binding: Binding | None = None, target_type: Any = str) -> "ParameterSpec":
        if binding is None:
            binding = NamedRequired(name)
        elif isinstance(binding, Named) and binding.key is None:
            binding = Named(name, binding.optional)
        elif isinstance(binding, NamedRequired) and binding.key is None:
            binding = NamedRequired(name)

        if isinstance(binding, FromContext):
            return cls(name=name, binding=binding, target_type=Context, converter=None)
        return cls(
            name=name,
            binding=binding,
            target_type=target_type,
            converter=converters.resolve(target_type),
        )

    @classmethod
    def context(cls, name: str = "ctx") -> "ParameterSpec":
        return cls.build(name, FromContext())

    @property
    def is_positional(self) -> bool:
        return isinstance(self.binding, Positional)

    @property
    def is_named(self) -> bool:
        return isinstance(self.binding, (Named, NamedRequired))

    @property
    def key(self) -> str | None:
        if isinstance(self.binding, (Named, NamedRequired)):
            return self.binding.key
        return None

    @property
    def label(self) -> str:
        if isinstance(self.binding, Positional):
            return self.binding.label or self.name
        return self.key or self.name

    def resolve(self, ctx: Context) -> Any:
        """Produce the value for this parameter or raise `BindError`."""

        binding = self.binding
        if isinstance(binding, FromContext):
            return ctx

        if isinstance(binding, Positional):
            if binding.index >= len(ctx.positional_arguments):
                raise BindError(BindErrorKind.MISSING_POSITIONAL, self.name, binding.index)
            return self._convert(ctx.positional_arguments[binding.index], binding.index)

        key = self.key or self.name
        raw = ctx.get_named(key)
        if raw is None:
            if isinstance(binding, Named) and binding.optional:
                return MISSING
            raise BindError(BindErrorKind.MISSING_NAMED, self.name, key)
        return self._convert(raw, key)

    def _convert(self, raw: str, key: int | str) -> Any:
        if self.converter is None:
            raise TypeError(f"parameter {self.name} is bound from the context and takes no argument")
        try:
            return self.converter(raw)
        except ConversionError as exc:
            raise BindError(BindErrorKind.INVALID_VALUE, self.name, key) from exc
