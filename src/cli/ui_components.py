"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets tests capture the views through a `Console(file=io.StringIO())`.
"""

from __future__ import annotations

import itertools
from typing import Iterable

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.command import CommandDescriptor
from core.domain.models import Document, local_name

_CONDITION_STYLES = {
    "Normal": "green on black",
    "Warning": "black on yellow",
    "Fault": "white on dark_red",
    "Unavailable": "black on bright_black",
}


def print_banner(console: Console) -> None:
    """Welcome banner of interactive mode."""

    title = Text("mt", style="bold cyan")
    subtitle = Text("MTConnect agent client • type Help for commands, Exit to quit", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def describe_arguments(descriptor: CommandDescriptor) -> str:
    """`Args:` line of the help: positional labels, then `[named]` keys sorted."""

    positional = [spec.label for spec in descriptor.positional]
    named = [f"[{descriptor.named[key].label}]" for key in sorted(descriptor.named)]
    if not positional and not named:
        return ""
    return "Args: " + " ".join([*positional, *named])


def build_help_table(descriptors: Iterable[CommandDescriptor]) -> Table:
    table = Table(title="Supported Commands", title_justify="left", show_edge=False)
    table.add_column("Command", style="cyan", no_wrap=True)
    table.add_column("Description", style="white")
    table.add_column("Arguments", style="dim")
    for descriptor in descriptors:
        table.add_row(Text(descriptor.name.upper()), Text(descriptor.description), Text(describe_arguments(descriptor)))
    return table


def _name_of(element, *attributes: str) -> str:
    for attribute in attributes:
        value = element.get(attribute)
        if value:
            return value
    return "unknown"


def print_device_status(console: Console, document: Document) -> None:
    """Device / component / condition tree of a `current` document.

    Conditions are coloured by state: Normal, Warning, Fault, Unavailable.
    """

    for device in document.find_all("DeviceStream"):
        name = _name_of(device, "name", "uuid")
        console.print(Text(name.ljust(console.width), style="bold white on blue"), no_wrap=True, crop=True)

        for component in itertools.islice(device.iter(), 1, None):
            if local_name(component.tag) != "ComponentStream":
                continue
            console.print(Text("|-" + _name_of(component, "name", "componentId")), highlight=False)

            condition = next(
                (node for node in itertools.islice(component.iter(), 1, None) if local_name(node.tag) == "Condition"),
                None,
            )
            if condition is None:
                continue
            for entry in itertools.islice(condition.iter(), 1, None):
                label = _name_of(entry, "name", "dataItemId")
                timestamp = entry.get("timestamp")
                if timestamp:
                    label += f"\t( since {timestamp})"
                style = _CONDITION_STYLES.get(local_name(entry.tag), "")
                console.print(Text.assemble("  |-", (label, style)), highlight=False)

        console.print()
