"""Command registry: name → descriptor table built once at startup.

Commands enter the table in two ways:

- `CommandRegistry.add(...)` registers any callable with an explicit list of
  `ParameterSpec` (used for built-ins such as `Help`).
- `CommandRegistry.register(instance)` scans the public methods of an object
  for the `@command` decoration and derives the specs from each signature.

Both paths validate eagerly; a malformed command raises
`InvalidCommandSignature` before anything runs.
"""

from __future__ import annotations

import collections.abc
import inspect
import logging
import typing
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping

from core.command.binding import (
    BINDING_TYPES,
    MISSING,
    Binding,
    FromContext,
    Named,
    ParameterSpec,
    Positional,
)
from core.command.context import Context
from core.command.decorators import get_command_marker
from core.errors import InvalidCommandSignature, UnsupportedTypeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandDescriptor:
    name: str
    description: str
    target: Callable[..., Any] = field(repr=False)
    parameters: tuple[ParameterSpec, ...] = ()

    @property
    def positional(self) -> tuple[ParameterSpec, ...]:
        specs = [spec for spec in self.parameters if isinstance(spec.binding, Positional)]
        return tuple(sorted(specs, key=lambda spec: spec.binding.index))  # type: ignore[union-attr]

    @property
    def positional_count(self) -> int:
        return len(self.positional)

    @property
    def named(self) -> Mapping[str, ParameterSpec]:
        return MappingProxyType({spec.key.casefold(): spec for spec in self.parameters if spec.key})

    def bind(self, ctx: Context) -> dict[str, Any]:
        """Resolve every parameter in declaration order; the first failure aborts."""

        kwargs: dict[str, Any] = {}
        for spec in self.parameters:
            value = spec.resolve(ctx)
            if value is not MISSING:
                kwargs[spec.name] = value
        return kwargs

    async def run(self, ctx: Context) -> None:
        """Bind `ctx` and invoke the command, awaiting it when it is asynchronous."""

        kwargs = self.bind(ctx)
        result = self.target(**kwargs)
        if inspect.isawaitable(result):
            await result


def _first_doc_line(func: Any) -> str:
    doc = inspect.getdoc(func) or ""
    return doc.strip().splitlines()[0] if doc.strip() else ""


def _split_annotated(hint: Any) -> tuple[Any, list[Binding]]:
    if typing.get_origin(hint) is typing.Annotated:
        base, *metadata = typing.get_args(hint)
        return base, [item for item in metadata if isinstance(item, BINDING_TYPES)]
    return hint, []


def _check_return(name: str, func: Any, hints: dict[str, Any]) -> None:
    if inspect.isgeneratorfunction(func) or inspect.isasyncgenfunction(func):
        raise InvalidCommandSignature(name, "generators cannot be commands")
    if "return" not in hints:
        raise InvalidCommandSignature(name, "the return type must be annotated as None")

    returns = hints["return"]
    if returns is type(None):
        return
    if not inspect.iscoroutinefunction(func):
        origin = typing.get_origin(returns)
        if origin in (collections.abc.Awaitable, collections.abc.Coroutine):
            args = typing.get_args(returns)
            if args and args[-1] is type(None):
                return
    raise InvalidCommandSignature(name, f"must return None or an awaitable of None, not {returns!r}")


def specs_from_signature(name: str, func: Callable[..., Any]) -> list[ParameterSpec]:
    """Derive the parameter specs of a decorated command from its signature."""

    raw = getattr(func, "__func__", func)
    try:
        hints = typing.get_type_hints(raw, include_extras=True)
    except Exception as exc:
        raise InvalidCommandSignature(name, f"annotations cannot be resolved ({exc})") from exc
    _check_return(name, raw, hints)

    specs: list[ParameterSpec] = []
    for param in inspect.signature(func).parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise InvalidCommandSignature(name, f"*{param.name} parameters are not supported")
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            raise InvalidCommandSignature(name, f"parameter {param.name} is positional-only")

        target_type, markers = _split_annotated(hints.get(param.name, str))
        if len(markers) > 1:
            raise InvalidCommandSignature(name, f"parameter {param.name} has conflicting bindings {markers}")
        binding = markers[0] if markers else None

        if target_type is Context:
            if binding is not None and not isinstance(binding, FromContext):
                raise InvalidCommandSignature(name, f"context parameter {param.name} cannot be {binding}")
            binding = FromContext()

        if isinstance(binding, Named) and binding.optional and param.default is inspect.Parameter.empty:
            raise InvalidCommandSignature(name, f"optional parameter {param.name} needs a default value")

        try:
            specs.append(ParameterSpec.build(param.name, binding, target_type))
        except UnsupportedTypeError as exc:
            raise InvalidCommandSignature(name, f"parameter {param.name}: {exc}") from exc
    return specs


def _validate_parameters(name: str, parameters: Iterable[ParameterSpec]) -> tuple[ParameterSpec, ...]:
    specs = tuple(parameters)
    seen_names: set[str] = set()
    seen_indices: set[int] = set()
    for spec in specs:
        if spec.name in seen_names:
            raise InvalidCommandSignature(name, f"parameter {spec.name} is declared twice")
        seen_names.add(spec.name)
        if isinstance(spec.binding, Positional):
            index = spec.binding.index
            if index < 0:
                raise InvalidCommandSignature(name, f"positional index {index} is negative")
            if index in seen_indices:
                raise InvalidCommandSignature(name, f"positional index {index} is claimed twice")
            seen_indices.add(index)
    return specs


class CommandRegistry:
    def __init__(self) -> None:
        self._commands: dict[str, CommandDescriptor] = {}

    def add(
        self,
        name: str,
        target: Callable[..., Any],
        parameters: Iterable[ParameterSpec] = (),
        description: str = "",
    ) -> CommandDescriptor:
        if not name:
            raise InvalidCommandSignature(repr(name), "a command needs a name")
        if inspect.isgeneratorfunction(target) or inspect.isasyncgenfunction(target):
            raise InvalidCommandSignature(name, "generators cannot be commands")

        descriptor = CommandDescriptor(
            name=name,
            description=description,
            target=target,
            parameters=_validate_parameters(name, parameters),
        )
        key = name.casefold()
        if key in self._commands:
            logger.debug("Command %s replaces an earlier registration", name)
        self._commands[key] = descriptor
        logger.debug("Registered command %s (%d parameters)", name, len(descriptor.parameters))
        return descriptor

    def register(self, instance: object) -> list[CommandDescriptor]:
        """Register every `@command` method of `instance`."""

        attributes: list[str] = []
        for klass in reversed(type(instance).__mro__):
            for attr in vars(klass):
                if not attr.startswith("_") and attr not in attributes:
                    attributes.append(attr)

        descriptors: list[CommandDescriptor] = []
        for attr in attributes:
            static = inspect.getattr_static(instance, attr)
            if isinstance(static, (staticmethod, classmethod)):
                static = static.__func__
            if not inspect.isfunction(static):
                continue
            marker = get_command_marker(static)
            if marker is None:
                continue

            name = marker.name or attr
            description = marker.description if marker.description is not None else _first_doc_line(static)
            bound = getattr(instance, attr)
            descriptors.append(self.add(name, bound, specs_from_signature(name, bound), description))
        return descriptors

    def get(self, name: str) -> CommandDescriptor | None:
        return self._commands.get(name.casefold())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._commands

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(sorted(self._commands.values(), key=lambda d: d.name.casefold()))

    def __len__(self) -> int:
        return len(self._commands)
