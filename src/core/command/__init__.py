"""Command engine: typed argument binding, registry, parser and dispatcher."""

from core.command.binding import (
    MISSING,
    FromContext,
    Named,
    NamedRequired,
    ParameterSpec,
    Positional,
)
from core.command.builder import CliBuilder
from core.command.context import CancellationToken, Context
from core.command.converters import UInt64
from core.command.decorators import Option, command
from core.command.dispatcher import Dispatcher
from core.command.options import OptionDescriptor, OptionRegistry
from core.command.parser import CommandParser
from core.command.registry import CommandDescriptor, CommandRegistry

__all__ = [
    "MISSING",
    "CancellationToken",
    "CliBuilder",
    "CommandDescriptor",
    "CommandParser",
    "CommandRegistry",
    "Context",
    "Dispatcher",
    "FromContext",
    "Named",
    "NamedRequired",
    "Option",
    "OptionDescriptor",
    "OptionRegistry",
    "ParameterSpec",
    "Positional",
    "UInt64",
    "command",
]
