"""Runs parsed contexts against the command registry."""

from __future__ import annotations

import logging

from core.command.context import Context
from core.command.registry import CommandRegistry
from core.errors import UnknownCommandError

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, commands: CommandRegistry) -> None:
        self._commands = commands

    async def run(self, ctx: Context) -> None:
        """Invoke the command named by `ctx`.

        Sync and async commands complete the same way: the returned coroutine
        finishes when the command does. Bind failures raise `BindError`;
        anything the command raises propagates unchanged.
        """

        descriptor = self._commands.get(ctx.command_name)
        if descriptor is None:
            raise UnknownCommandError(ctx.command_name)

        logger.debug(
            "Dispatching %s positional=%s named=%s",
            descriptor.name,
            list(ctx.positional_arguments),
            dict(ctx.named_arguments),
        )
        await descriptor.run(ctx)
