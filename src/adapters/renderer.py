"""Terminal rendering of agent documents.

Why everything goes through `Console.out`:
- Documents are data: no Rich markup, highlighting or wrapping may alter them.
- Tests capture the output with `Console(file=io.StringIO())`.

JSON follows the usual XML-to-JSON convention: attributes become `@name`
keys, text becomes `#text` (or the bare value when the element has nothing
else), repeated child elements become arrays and empty elements `null`.
Namespaces are dropped everywhere except in the raw XML of whole documents.
"""

from __future__ import annotations

import copy
import csv
import io
import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Sequence

from rich.console import Console

from adapters.xml_filters import element_text
from core.domain.models import Document, OutputFormat, local_name
from core.errors import RenderError

logger = logging.getLogger(__name__)

_CSV_FORMATS = (OutputFormat.CSV, OutputFormat.CSVNOHEADER)


def _json_value(element: ET.Element) -> Any:
    children = list(element)
    text = "".join(
        [(element.text or "").strip(), *((child.tail or "").strip() for child in children)]
    )
    if not element.attrib and not children:
        return text or None

    value: dict[str, Any] = {f"@{local_name(key)}": item for key, item in element.attrib.items()}
    for child in children:
        name = local_name(child.tag)
        child_value = _json_value(child)
        if name not in value:
            value[name] = child_value
        elif isinstance(value[name], list):
            value[name].append(child_value)
        else:
            value[name] = [value[name], child_value]
    if text:
        value["#text"] = text
    return value


def element_to_json(element: ET.Element) -> dict[str, Any]:
    return {local_name(element.tag): _json_value(element)}


def dump_json(payload: Any, *, pretty: bool) -> str:
    if pretty:
        return json.dumps(payload, ensure_ascii=False, indent=2)
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def element_to_xml(element: ET.Element) -> str:
    """Indented XML of `element` with namespace prefixes removed."""

    clone = copy.deepcopy(element)
    for node in clone.iter():
        node.tag = local_name(node.tag)
        attributes = {local_name(key): item for key, item in node.attrib.items()}
        node.attrib.clear()
        node.attrib.update(attributes)
    clone.tail = None
    ET.indent(clone)
    return ET.tostring(clone, encoding="unicode")


def csv_rows(elements: Sequence[ET.Element], *, header: bool) -> str:
    """`Type,<attributes...>,Value` rows; the header uses the first element's attributes."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if header:
        writer.writerow(["Type", *(local_name(key) for key in elements[0].attrib), "Value"])
    for element in elements:
        writer.writerow([local_name(element.tag), *element.attrib.values(), element_text(element)])
    return buffer.getvalue()


def render_document(
    console: Console,
    document: Document,
    fmt: OutputFormat,
    *,
    header_only: bool = False,
) -> None:
    """Print a whole document, or only its `Header` element."""

    target = document.root
    if header_only:
        headers = document.find_all("Header")
        if not headers:
            logger.debug("Document %s has no Header element", document.root_name)
            return
        target = headers[0]

    if fmt is OutputFormat.XML:
        console.out(element_to_xml(target) if header_only else document.text, highlight=False)
    elif fmt in (OutputFormat.JSON, OutputFormat.PRETTYJSON):
        payload = element_to_json(target)
        console.out(dump_json(payload, pretty=fmt is OutputFormat.PRETTYJSON), highlight=False)
    else:
        raise RenderError(f"Cannot output a whole document in format {fmt.name}.")


def render_elements(console: Console, elements: Sequence[ET.Element], fmt: OutputFormat) -> None:
    """Print the elements selected by filters, one record per element."""

    if not elements:
        return
    logger.debug("Rendering %d element(s) as %s", len(elements), fmt.name)

    if fmt in _CSV_FORMATS:
        console.out(csv_rows(elements, header=fmt is OutputFormat.CSV), end="", highlight=False)
        return

    for element in elements:
        if fmt is OutputFormat.XML:
            console.out(element_to_xml(element), highlight=False)
        else:
            payload = element_to_json(element)
            console.out(dump_json(payload, pretty=fmt is OutputFormat.PRETTYJSON), highlight=False)
