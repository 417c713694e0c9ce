"""`mt` entry point (Typer).

Everything after the options belongs to the command engine: typer only owns
`--log-level` and `--help`, and hands the remaining tokens over untouched so
`-deviceName dev1` style flags reach the parser as they were typed.
"""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from cli.commands import MtCli
from core.config import AppSettings

app = typer.Typer(add_completion=False, help="Command-line client for MTConnect agents.")


def configure_logging(level: str) -> None:
    """Send log records to stderr through Rich; safe to call more than once."""

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    if any(isinstance(handler, RichHandler) for handler in root.handlers):
        return
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)


@app.command(
    context_settings={
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    }
)
def main(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR). Defaults to MT_LOG_LEVEL.",
    ),
) -> None:
    """Run commands such as `connect <url> current -path <xpath>`.

    Without commands, starts interactive mode.
    """

    settings = AppSettings()
    configure_logging(log_level or settings.log_level)

    cli = MtCli(settings=settings)
    cli.setup()
    tokens = list(ctx.args) or ["Interactive"]
    asyncio.run(cli.process_to_end(tokens))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
