"""Argument-vector parser.

Grammar of one invocation::

    <command> <positional>{positional_count} (-<key> <value>)*

Tokens arrive already split; nothing is unquoted or unescaped here. Scanning
of `-key value` pairs stops silently at the first pair whose flag lacks the
marker, or when fewer than two tokens remain. The tokens left over belong to
the next invocation.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Mapping, Sequence

from core.command.context import CancellationToken, Context
from core.command.registry import CommandRegistry

logger = logging.getLogger(__name__)

FLAG_MARKER = "-"


class CommandParser:
    def __init__(
        self,
        commands: CommandRegistry,
        *,
        options: Callable[[], Mapping[str, Any]] | None = None,
        flag_marker: str = FLAG_MARKER,
    ) -> None:
        self._commands = commands
        self._options = options or (lambda: MappingProxyType({}))
        self._flag_marker = flag_marker

    def parse_first(
        self,
        args: Sequence[str],
        cancellation: CancellationToken | None = None,
    ) -> tuple[Context | None, int]:
        """Parse the first invocation in `args`.

        Returns `(None, 0)` for empty input and `(None, 1)` when the first
        token is not a registered command.
        """

        if not args:
            return None, 0

        name = args[0]
        descriptor = self._commands.get(name)
        if descriptor is None:
            logger.debug("Unrecognized command token %r", name)
            return None, 1

        positional = tuple(args[1 : 1 + descriptor.positional_count])
        remainder = args[1 + len(positional) :]

        named: dict[str, str] = {}
        consumed = 0
        while consumed + 1 < len(remainder):
            flag = remainder[consumed]
            if not flag.startswith(self._flag_marker):
                break
            named[flag.lstrip(self._flag_marker).casefold()] = remainder[consumed + 1]
            consumed += 2

        context = Context(
            command_name=descriptor.name,
            positional_arguments=positional,
            named_arguments=MappingProxyType(named),
            options=self._options(),
            cancellation=cancellation or CancellationToken(),
        )
        return context, 1 + len(positional) + consumed
