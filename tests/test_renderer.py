"""Rendering of documents and filtered elements."""

import json
import xml.etree.ElementTree as ET

import pytest

from adapters.renderer import element_to_json, element_to_xml, render_document, render_elements
from adapters.xml_filters import apply_filters, build_stream_filters
from core.domain.models import Category, Document, OutputFormat
from core.errors import RenderError
from mt_samples import STREAMS_XML


@pytest.fixture
def document():
    return Document.parse(STREAMS_XML.encode())


def select(document, **options):
    return apply_filters(document, build_stream_filters(**options))


class TestJsonConvention:
    def test_attributes_and_text(self):
        element = ET.fromstring('<Execution dataItemId="e1" sequence="12">ACTIVE</Execution>')
        assert element_to_json(element) == {
            "Execution": {"@dataItemId": "e1", "@sequence": "12", "#text": "ACTIVE"}
        }

    def test_text_only_and_empty(self):
        assert element_to_json(ET.fromstring("<Name>Mill</Name>")) == {"Name": "Mill"}
        assert element_to_json(ET.fromstring("<Empty/>")) == {"Empty": None}

    def test_repeated_children_become_arrays(self):
        element = ET.fromstring('<Events><Item id="1"/><Item id="2"/><Other/><Item id="3"/></Events>')
        assert element_to_json(element) == {
            "Events": {"Item": [{"@id": "1"}, {"@id": "2"}, {"@id": "3"}], "Other": None}
        }

    def test_namespaces_are_dropped(self, document):
        payload = element_to_json(document.root)
        assert list(payload) == ["MTConnectStreams"]
        assert payload["MTConnectStreams"]["Streams"]["DeviceStream"]["@name"] == "Mill"


class TestRenderDocument:
    def test_xml_is_the_raw_document(self, out, document):
        render_document(out.console, document, OutputFormat.XML)
        assert out.text.strip() == STREAMS_XML.strip()

    def test_header_only(self, out, document):
        render_document(out.console, document, OutputFormat.XML, header_only=True)
        assert out.text.startswith('<Header creationTime="2024-01-01T00:00:00Z"')
        assert "Streams" not in out.text

    def test_compact_json(self, out, document):
        render_document(out.console, document, OutputFormat.JSON, header_only=True)
        assert out.lines == [
            '{"Header":{"@creationTime":"2024-01-01T00:00:00Z","@sender":"agent",'
            '"@instanceId":"1","@nextSequence":"101"}}'
        ]

    def test_pretty_json(self, out, document):
        render_document(out.console, document, OutputFormat.PRETTYJSON)
        payload = json.loads(out.text)
        assert payload["MTConnectStreams"]["Header"]["@instanceId"] == "1"
        assert len(out.lines) > 10

    @pytest.mark.parametrize("fmt", [OutputFormat.CSV, OutputFormat.CSVNOHEADER])
    def test_csv_needs_filters(self, out, document, fmt):
        with pytest.raises(RenderError):
            render_document(out.console, document, fmt)


class TestRenderElements:
    def test_csv_with_header(self, out, document):
        render_elements(out.console, select(document, category=Category.SAMPLES), OutputFormat.CSV)
        assert out.lines == [
            "Type,dataItemId,name,sequence,timestamp,Value",
            "SpindleSpeed,s1,Srpm,10,2024-01-01T00:00:01Z,1200",
            "Position,x1,Xact,ACTUAL,11,2024-01-01T00:00:02Z,10.5",
        ]

    def test_csv_without_header(self, out, document):
        render_elements(out.console, select(document, data_item_id="motion"), OutputFormat.CSVNOHEADER)
        assert out.lines == ["Fault,motion,MOTION_PROGRAM,15,2024-01-01T00:00:06Z,Overtravel"]

    def test_csv_quotes_commas(self, out):
        element = ET.fromstring('<Message dataItemId="m1">hello, world</Message>')
        render_elements(out.console, [element], OutputFormat.CSVNOHEADER)
        assert out.lines == ['Message,m1,"hello, world"']

    def test_json_one_line_per_element(self, out, document):
        render_elements(out.console, select(document, category=Category.EVENTS), OutputFormat.JSON)
        records = [json.loads(line) for line in out.lines]
        assert [next(iter(record)) for record in records] == ["Execution", "Availability"]
        assert records[0]["Execution"]["#text"] == "ACTIVE"

    def test_xml_elements(self, out, document):
        render_elements(out.console, select(document, data_item_id="e1"), OutputFormat.XML)
        assert out.text.strip() == (
            '<Execution dataItemId="e1" name="exec" sequence="12" '
            'timestamp="2024-01-01T00:00:03Z">ACTIVE</Execution>'
        )

    def test_nothing_selected_prints_nothing(self, out):
        render_elements(out.console, [], OutputFormat.CSV)
        assert out.text == ""


def test_element_to_xml_strips_namespaces_and_indents(document):
    container = select(document, category=None, data_item_type="Samples")[0]
    assert element_to_xml(container).splitlines() == [
        "<Samples>",
        '  <SpindleSpeed dataItemId="s1" name="Srpm" sequence="10" timestamp="2024-01-01T00:00:01Z">1200</SpindleSpeed>',
        '  <Position dataItemId="x1" name="Xact" subType="ACTUAL" sequence="11" timestamp="2024-01-01T00:00:02Z">10.5</Position>',
        "</Samples>",
    ]
