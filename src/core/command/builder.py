"""Facade wiring registries, parser and dispatcher into one engine."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Sequence

from pydantic import BaseModel

from core.command.binding import ParameterSpec
from core.command.context import CancellationToken, Context
from core.command.dispatcher import Dispatcher
from core.command.options import OptionRegistry
from core.command.parser import FLAG_MARKER, CommandParser
from core.command.registry import CommandDescriptor, CommandRegistry


class CliBuilder:
    """Command engine for one CLI session.

    Typical setup::

        builder = CliBuilder()
        builder.register_commands(surface)
        builder.register_options(options_model)
        ctx, used = builder.parse_first(tokens)
        if ctx is not None:
            await builder.run(ctx)
    """

    def __init__(self, *, flag_marker: str = FLAG_MARKER) -> None:
        self.commands = CommandRegistry()
        self.options = OptionRegistry()
        self._parser = CommandParser(self.commands, options=self.options.snapshot, flag_marker=flag_marker)
        self._dispatcher = Dispatcher(self.commands)

    def register_commands(self, instance: object) -> list[CommandDescriptor]:
        return self.commands.register(instance)

    def add_command(
        self,
        name: str,
        target: Callable[..., Any],
        parameters: Iterable[ParameterSpec] = (),
        description: str = "",
    ) -> CommandDescriptor:
        return self.commands.add(name, target, parameters, description)

    def register_options(self, instance: BaseModel) -> None:
        self.options.register(instance)

    def parse_first(
        self,
        args: Sequence[str],
        cancellation: CancellationToken | None = None,
    ) -> tuple[Context | None, int]:
        return self._parser.parse_first(args, cancellation)

    async def run(self, ctx: Context) -> None:
        await self._dispatcher.run(ctx)

    def get_option(self, name: str) -> Any:
        return self.options.get(name)

    def set_option(self, name: str, raw: str) -> None:
        self.options.set(name, raw)
