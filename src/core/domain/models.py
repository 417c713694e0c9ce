"""Domain models (Pydantic v2 and plain dataclasses).

- `Options`: the application settings that users change at runtime with the
  `Option` command. All access goes through the option registry.
- `OutputFormat` / `Category`: enumerations accepted on the command line
  (matched by member name, case-insensitively).
- `Document`: one XML document received from an agent.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from core.command.decorators import Option


class OutputFormat(str, Enum):
    """How documents and filtered elements are written to the terminal."""

    XML = "xml"
    JSON = "json"
    PRETTYJSON = "prettyjson"
    CSV = "csv"
    CSVNOHEADER = "csvnoheader"


class Category(str, Enum):
    """MTConnect data item category (the container element in a streams document)."""

    SAMPLES = "Samples"
    EVENTS = "Events"
    CONDITION = "Condition"


class Options(BaseModel):
    """Runtime options of a CLI session."""

    model_config = ConfigDict(validate_assignment=True)

    verbose: Annotated[bool, Option("Verbose")] = Field(
        default=False,
        description="Echo each command and its arguments before running it.",
    )
    header_only: Annotated[bool, Option("HeaderOnly")] = Field(
        default=False,
        description="Print only the Header element of whole documents.",
    )
    format: Annotated[OutputFormat, Option("Format")] = Field(
        default=OutputFormat.XML,
        description="Output format: Xml, Json, PrettyJson, Csv or CsvNoHeader.",
    )


def local_name(tag: str) -> str:
    """Tag without its `{namespace}` prefix."""

    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


@dataclass(frozen=True)
class Document:
    """An XML document as received (`raw`) and parsed (`root`)."""

    raw: bytes
    root: ET.Element

    @classmethod
    def parse(cls, data: bytes) -> "Document":
        """Parse `data`; raises `xml.etree.ElementTree.ParseError` on malformed XML."""

        return cls(raw=data, root=ET.fromstring(data))

    @property
    def root_name(self) -> str:
        return local_name(self.root.tag)

    @property
    def text(self) -> str:
        return self.raw.decode("utf-8", errors="replace").strip()

    def find_all(self, name: str) -> list[ET.Element]:
        """Every element (root included) whose local name is `name`."""

        return [element for element in self.root.iter() if local_name(element.tag) == name]
