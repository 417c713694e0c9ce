"""Help table and device status views."""

from typing import Annotated

from cli.ui_components import build_help_table, describe_arguments, print_banner, print_device_status
from core.command import CommandRegistry, Context, Named, Positional, command
from core.domain.models import Document
from mt_samples import STREAMS_XML


class Surface:
    @command("Option", description="Sets an option.")
    def option(self, key: Annotated[str, Positional(0)], value: Annotated[str, Positional(1, "newValue")]) -> None:
        pass

    @command("Probe", description="Sends a probe request.")
    def probe(self, ctx: Context, device_name: Annotated[str | None, Named("deviceName")] = None) -> None:
        pass

    @command("Sample", description="Sends a sample request.")
    def sample(
        self,
        path: Annotated[str | None, Named()] = None,
        count: Annotated[int | None, Named()] = None,
        at: Annotated[int | None, Named()] = None,
    ) -> None:
        pass

    @command("Clear", description="Clears the screen.")
    def clear(self) -> None:
        pass


def registry():
    commands = CommandRegistry()
    commands.register(Surface())
    return commands


class TestHelp:
    def test_arguments_line(self):
        commands = registry()
        assert describe_arguments(commands.get("option")) == "Args: key newValue"
        assert describe_arguments(commands.get("probe")) == "Args: [deviceName]"
        assert describe_arguments(commands.get("sample")) == "Args: [at] [count] [path]"
        assert describe_arguments(commands.get("clear")) == ""

    def test_table_rows_are_sorted_and_upper_case(self, out):
        out.console.print(build_help_table(registry()))
        text = out.text
        assert text.index("CLEAR") < text.index("OPTION") < text.index("PROBE") < text.index("SAMPLE")
        assert "Sends a probe request." in text


def test_banner(out):
    print_banner(out.console)
    assert "MTConnect agent client" in out.text


def test_device_status_without_conditions(out):
    document = Document.parse(
        b'<MTConnectStreams><Streams><DeviceStream uuid="u-1">'
        b'<ComponentStream componentId="axes"><Samples/></ComponentStream>'
        b"</DeviceStream></Streams></MTConnectStreams>"
    )
    print_device_status(out.console, document)
    assert [line.rstrip() for line in out.lines] == ["u-1", "|-axes", ""]


def test_device_status_with_conditions(out):
    print_device_status(out.console, Document.parse(STREAMS_XML.encode()))
    lines = [line.rstrip() for line in out.lines]
    assert lines[:2] == ["Mill", "|-controller"]
    assert "Overtravel" not in out.text
    assert lines[3].startswith("  |-motion")
