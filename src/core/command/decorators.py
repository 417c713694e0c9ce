"""Decorations that mark methods as commands and model fields as options."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypeVar, overload

F = TypeVar("F", bound=Callable[..., Any])

COMMAND_ATTRIBUTE = "__mt_command__"


@dataclass(frozen=True)
class CommandMarker:
    name: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class Option:
    """`Annotated` marker for an option field of a pydantic options model.

    Example::

        class Options(BaseModel):
            verbose: Annotated[bool, Option("Verbose")] = False
    """

    name: str | None = None


@overload
def command(name: F) -> F: ...


@overload
def command(name: str | None = None, *, description: str | None = None) -> Callable[[F], F]: ...


def command(name: Any = None, *, description: str | None = None) -> Any:
    """Mark a method as a command.

    Usable bare (`@command`) or with an explicit name and description
    (`@command("ShowOptions", description="...")`). Without a description the
    first line of the docstring is used at registration.
    """

    if callable(name):
        setattr(name, COMMAND_ATTRIBUTE, CommandMarker())
        return name

    def decorate(func: F) -> F:
        setattr(func, COMMAND_ATTRIBUTE, CommandMarker(name=name, description=description))
        return func

    return decorate


def get_command_marker(obj: Any) -> CommandMarker | None:
    func = getattr(obj, "__func__", obj)
    marker = getattr(func, COMMAND_ATTRIBUTE, None)
    return marker if isinstance(marker, CommandMarker) else None
