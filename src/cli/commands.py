"""Commands of the `mt` application.

`MtCli` is the command surface handed to the engine: its `@command` methods
are registered by decoration, and `Help`, `Version` and `Exit` are added with
explicit builder calls. The same instance drives batch mode
(`process_to_end`) and interactive mode (the `Interactive` command).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from enum import Enum
from importlib import metadata
from typing import Annotated, Any, Callable, Iterator, Sequence

import httpx
from rich.console import Console

from adapters.agent import Agent, is_devices_document, normalize_agent_url
from adapters.renderer import render_document, render_elements
from adapters.xml_filters import ElementFilter, apply_filters, build_stream_filters
from cli.ui_components import build_help_table, print_banner, print_device_status
from core.command import CancellationToken, CliBuilder, Context, Named, Positional, UInt64, command
from core.config import AppSettings
from core.domain.models import Category, Document, Options
from core.errors import AgentError, MtError
from core.interfaces.agent import AgentClient
from core.streaming import AsyncDocumentStream

logger = logging.getLogger(__name__)

PROMPT = "> "
DISTRIBUTION_NAME = "mt-cli"

AgentFactory = Callable[[str], AgentClient]
InputFunc = Callable[[str], str]


def _echo_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.name
    return str(value)


@contextlib.contextmanager
def _sigint_cancels(token: CancellationToken) -> Iterator[None]:
    """Route Ctrl+C to `token` while the block runs."""

    try:
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError, ValueError):
        # Windows event loops and non-main threads keep the default handler.
        yield
        return
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)


def _restore_default_sigint() -> None:
    try:
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    except (NotImplementedError, RuntimeError, ValueError):
        pass


class MtCli:
    def __init__(
        self,
        builder: CliBuilder | None = None,
        *,
        settings: AppSettings | None = None,
        console: Console | None = None,
        error_console: Console | None = None,
        agent_factory: AgentFactory | None = None,
        input_func: InputFunc | None = None,
    ) -> None:
        self._builder = builder or CliBuilder()
        self._settings = settings or AppSettings()
        self._console = console or Console()
        self._error_console = error_console or Console(stderr=True)
        self._agent_factory = agent_factory or self._default_agent_factory
        self._input = input_func or self._console.input
        self._options = Options(format=self._settings.default_format)
        self._agent: AgentClient | None = None

    def _default_agent_factory(self, url: str) -> AgentClient:
        return Agent(url, settings=self._settings)

    @property
    def builder(self) -> CliBuilder:
        return self._builder

    @property
    def agent(self) -> AgentClient | None:
        return self._agent

    def setup(self) -> None:
        """Register commands, built-ins and options; connect to `MT_AGENT_URL` when set."""

        self._builder.register_commands(self)
        self._builder.add_command("Version", self._show_version, description="Displays the version.")
        self._builder.add_command("Exit", self._exit, description="Exits the application.")
        self._builder.add_command("Help", self._show_help, description="Displays this help text.")
        self._builder.register_options(self._options)

        if self._settings.agent_url:
            self._agent = self._agent_factory(normalize_agent_url(self._settings.agent_url))
            logger.info("Using agent %s", self._settings.agent_url)

    # ------------------------------------------------------------------
    # Loop

    async def process_to_end(self, args: Sequence[str]) -> None:
        """Run every command in `args`, one after another.

        Failed commands are reported and the loop moves on; `Exit` ends the
        process through `SystemExit`.
        """

        tokens = list(args)
        while tokens:
            ctx, used = self._builder.parse_first(tokens, CancellationToken())
            if ctx is None:
                self._report(f"Unrecognized command: {tokens[0]}")
            tokens = tokens[used:]
            if ctx is not None:
                await self._run(ctx)

    async def _run(self, ctx: Context) -> None:
        try:
            with _sigint_cancels(ctx.cancellation):
                await self._builder.run(ctx)
        except (MtError, httpx.HTTPError) as exc:
            logger.debug("Command %s failed", ctx.command_name, exc_info=True)
            self._report(f"Error: {exc}")

    def _report(self, message: str) -> None:
        self._error_console.print(message, markup=False, highlight=False)

    # ------------------------------------------------------------------
    # Helpers

    @property
    def verbose(self) -> bool:
        return bool(self._builder.get_option("Verbose"))

    def _echo(self, name: str, *values: Any) -> None:
        if self.verbose:
            self._console.out(" ".join([name, *(_echo_value(value) for value in values)]), highlight=False)

    def _require_agent(self) -> AgentClient:
        if self._agent is None:
            raise AgentError("No connection to an MTConnect Agent has been configured.")
        return self._agent

    def _output(self, document: Document, filters: Sequence[ElementFilter] = ()) -> None:
        fmt = self._builder.get_option("Format")
        if not filters:
            render_document(self._console, document, fmt, header_only=self._builder.get_option("HeaderOnly"))
            return
        render_elements(self._console, apply_filters(document, filters), fmt)

    async def _output_stream(self, stream: AsyncDocumentStream, filters: Sequence[ElementFilter]) -> None:
        async with stream:
            async for document in stream:
                self._output(document, filters)

    # ------------------------------------------------------------------
    # Built-ins

    def _show_version(self) -> None:
        try:
            version = metadata.version(DISTRIBUTION_NAME)
        except metadata.PackageNotFoundError:
            version = "unknown"
        self._console.out(f"mt v.{version}", highlight=False)

    def _exit(self) -> None:
        raise SystemExit(0)

    def _show_help(self) -> None:
        self._console.print(build_help_table(self._builder.commands))

    # ------------------------------------------------------------------
    # Session commands

    @command("Connect", description="Specifies the URI of the MTConnect agent.")
    def connect(self, agent_uri: Annotated[str, Positional(0, "agentUri")]) -> None:
        self._echo("CONNECT", agent_uri)
        self._agent = self._agent_factory(normalize_agent_url(agent_uri))
        logger.info("Connected to %s", self._agent.base_url)

    @command("Test", description="Tests whether the URI is a valid MTConnect agent.")
    async def test(self, agent_uri: Annotated[str, Positional(0, "agentUri")]) -> None:
        self._echo("TEST", agent_uri)
        agent = self._agent_factory(normalize_agent_url(agent_uri))
        document = await agent.probe()
        if not is_devices_document(document):
            raise AgentError("Probe did not return an MTConnectDevices document. Not an MTConnect agent.")
        self._console.out("OK", highlight=False)

    @command("Interactive", description="Enters interactive mode.")
    async def interactive(self) -> None:
        """Read lines from the prompt and run every command on each one.

        Ends on end of input or Ctrl+C at the prompt.
        """

        self._echo("INTERACTIVE")
        print_banner(self._console)
        while True:
            _restore_default_sigint()
            try:
                line = self._input(PROMPT)
            except (EOFError, KeyboardInterrupt):
                self._console.out("")
                return
            await self.process_to_end(line.split())

    @command("Option", description="Sets an option specified by a key to a value.")
    def option(
        self,
        key: Annotated[str, Positional(0, "key")],
        value: Annotated[str, Positional(1, "value")],
    ) -> None:
        self._echo("OPTION", f"{key}={value}")
        self._builder.set_option(key, value)

    @command("ShowOptions", description="Show current value of all options.")
    def show_options(self) -> None:
        self._echo("SHOWOPTIONS")
        for name, value in self._builder.options.items():
            self._console.out(f"{name}: {_echo_value(value)}", highlight=False)

    @command("Clear", description="Clears the screen.")
    def clear(self) -> None:
        self._echo("CLEAR")
        self._console.clear()

    # ------------------------------------------------------------------
    # Agent requests

    @command("Probe", description="Sends a probe request to the MTConnect agent.")
    async def probe(self, device_name: Annotated[str | None, Named("deviceName")] = None) -> None:
        self._echo("PROBE", device_name)
        document = await self._require_agent().probe(device_name)
        self._output(document)

    @command("Current", description="Sends a current request to the MTConnect agent.")
    async def current(
        self,
        ctx: Context,
        device_name: Annotated[str | None, Named("deviceName")] = None,
        at: Annotated[UInt64 | None, Named()] = None,
        path: Annotated[str | None, Named()] = None,
        interval: Annotated[UInt64 | None, Named()] = None,
        category: Annotated[Category | None, Named()] = None,
        data_item_id: Annotated[str | None, Named("id")] = None,
        data_item_name: Annotated[str | None, Named("name")] = None,
        data_item_type: Annotated[str | None, Named("type")] = None,
        data_item_sub_type: Annotated[str | None, Named("subType")] = None,
        filter_: Annotated[str | None, Named("filter")] = None,
    ) -> None:
        self._echo("CURRENT", device_name, at, path, interval)
        agent = self._require_agent()
        filters = build_stream_filters(
            category=category,
            data_item_id=data_item_id,
            data_item_name=data_item_name,
            data_item_type=data_item_type,
            data_item_sub_type=data_item_sub_type,
            expression=filter_,
        )
        if interval:
            stream = await agent.current_stream(interval, device_name, at, path, cancellation=ctx.cancellation)
            await self._output_stream(stream, filters)
        else:
            self._output(await agent.current(device_name, at, path), filters)

    @command("Sample", description="Sends a sample request to the MTConnect agent.")
    async def sample(
        self,
        ctx: Context,
        device_name: Annotated[str | None, Named("deviceName")] = None,
        from_: Annotated[UInt64 | None, Named("from")] = None,
        path: Annotated[str | None, Named()] = None,
        interval: Annotated[UInt64 | None, Named()] = None,
        count: Annotated[UInt64 | None, Named()] = None,
        category: Annotated[Category | None, Named()] = None,
        data_item_id: Annotated[str | None, Named("id")] = None,
        data_item_name: Annotated[str | None, Named("name")] = None,
        data_item_type: Annotated[str | None, Named("type")] = None,
        data_item_sub_type: Annotated[str | None, Named("subType")] = None,
        filter_: Annotated[str | None, Named("filter")] = None,
    ) -> None:
        self._echo("SAMPLE", device_name, from_, path, interval, count)
        agent = self._require_agent()
        filters = build_stream_filters(
            category=category,
            data_item_id=data_item_id,
            data_item_name=data_item_name,
            data_item_type=data_item_type,
            data_item_sub_type=data_item_sub_type,
            expression=filter_,
        )
        if interval:
            stream = await agent.sample_stream(
                interval, device_name, from_, path, count, cancellation=ctx.cancellation
            )
            await self._output_stream(stream, filters)
        else:
            self._output(await agent.sample(device_name, from_, path, count), filters)

    @command("Asset", description="Sends an asset request to the MTConnect agent.")
    async def asset(
        self,
        asset_id: Annotated[str | None, Named("assetId")] = None,
        type_: Annotated[str | None, Named("type")] = None,
        removed: Annotated[str | None, Named()] = None,
        count: Annotated[UInt64 | None, Named()] = None,
    ) -> None:
        self._echo("ASSET", asset_id, type_, removed, count)
        document = await self._require_agent().asset(asset_id, type_, removed, count)
        self._output(document)

    @command("Status", description="Displays basic status of all devices.")
    async def status(self) -> None:
        self._echo("STATUS")
        document = await self._require_agent().current()
        print_device_status(self._console, document)
