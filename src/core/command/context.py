"""Per-invocation context handed from the parser to the dispatcher."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


class CancellationToken:
    """One-way cancellation signal.

    Backed by a `threading.Event` so it can be set from a signal handler, a
    worker thread or a coroutine and polled from any of them.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class Context:
    """Parsed arguments of one command invocation.

    `named_arguments` is keyed by case-folded names; use `get_named` for
    lookups so callers never depend on that normalisation.
    """

    command_name: str
    positional_arguments: tuple[str, ...] = ()
    named_arguments: Mapping[str, str] = field(default_factory=_empty_mapping)
    options: Mapping[str, Any] = field(default_factory=_empty_mapping)
    cancellation: CancellationToken = field(default_factory=CancellationToken)

    def get_named(self, key: str) -> str | None:
        return self.named_arguments.get(key.casefold())

    def has_named(self, key: str) -> bool:
        return key.casefold() in self.named_arguments
