"""Agent client against an in-memory httpx transport."""

import httpx
import pytest

from adapters.agent import Agent, assert_no_errors, is_devices_document, normalize_agent_url
from core.command import CancellationToken
from core.config import AppSettings
from core.domain.models import Document
from core.errors import AgentError
from mt_samples import DEVICES_XML, ERROR_XML, MULTIPART_CONTENT_TYPE, STREAMS_XML, multipart_body, sample_document


class FakeAgent:
    """Records requests and answers with canned responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.responses.pop(0)

    @property
    def last(self):
        return self.requests[-1]


def xml_response(text, status_code=200):
    return httpx.Response(status_code, text=text, headers={"content-type": "text/xml"})


def make_agent(fake, url="http://agent.local:5000/"):
    return Agent(url, settings=AppSettings(_env_file=None), transport=httpx.MockTransport(fake))


class TestUrls:
    def test_scheme_is_added_when_missing(self):
        assert normalize_agent_url("agent.local:5000") == "http://agent.local:5000"
        assert normalize_agent_url(" https://agent.local ") == "https://agent.local"

    def test_build_url_skips_blank_segments(self):
        agent = make_agent(FakeAgent())
        assert agent.base_url == "http://agent.local:5000"
        assert agent.build_url(None, "current") == "http://agent.local:5000/current"
        assert agent.build_url(" ", "sample") == "http://agent.local:5000/sample"
        assert agent.build_url() == "http://agent.local:5000"

    def test_base_path_is_kept(self):
        agent = make_agent(FakeAgent(), "http://host/mtc/")
        assert agent.build_url("Mill", "current") == "http://host/mtc/Mill/current"


class TestRequests:
    @pytest.mark.asyncio
    async def test_probe(self):
        fake = FakeAgent(xml_response(DEVICES_XML), xml_response(DEVICES_XML))
        agent = make_agent(fake)
        document = await agent.probe()
        assert fake.last.url.host == "agent.local"
        assert fake.last.url.path == "/"
        assert is_devices_document(document)
        await agent.probe("Mill")
        assert fake.last.url.path == "/Mill"

    @pytest.mark.asyncio
    async def test_current_query(self):
        fake = FakeAgent(xml_response(STREAMS_XML))
        document = await make_agent(fake).current("Mill", at=42, path="//DataItem")
        assert fake.last.url.path == "/Mill/current"
        assert dict(fake.last.url.params) == {"at": "42", "path": "//DataItem"}
        assert document.root_name == "MTConnectStreams"

    @pytest.mark.asyncio
    async def test_sample_query_uses_from(self):
        fake = FakeAgent(xml_response(STREAMS_XML))
        await make_agent(fake).sample(from_=5, count=10)
        assert fake.last.url.path == "/sample"
        assert dict(fake.last.url.params) == {"from": "5", "count": "10"}

    @pytest.mark.asyncio
    async def test_asset_paths(self):
        fake = FakeAgent(xml_response("<MTConnectAssets/>"), xml_response("<MTConnectAssets/>"))
        agent = make_agent(fake)
        await agent.asset("A1")
        assert fake.last.url.path == "/asset/A1"
        await agent.asset(type_="CuttingTool", removed="true")
        assert fake.last.url.path == "/assets"
        assert dict(fake.last.url.params) == {"type": "CuttingTool", "removed": "true"}

    @pytest.mark.asyncio
    async def test_sends_the_configured_user_agent(self):
        fake = FakeAgent(xml_response(DEVICES_XML))
        await make_agent(fake).probe()
        assert fake.last.headers["user-agent"] == "mt/0.1"


class TestFailures:
    @pytest.mark.asyncio
    async def test_non_200_status(self):
        fake = FakeAgent(httpx.Response(404))
        with pytest.raises(AgentError) as info:
            await make_agent(fake).probe()
        assert str(info.value) == "MTConnect Agent reported failure: 404 Not Found"
        assert info.value.status_code == 404
        assert info.value.reason == "Not Found"

    @pytest.mark.asyncio
    async def test_error_document(self):
        fake = FakeAgent(xml_response(ERROR_XML))
        with pytest.raises(AgentError) as info:
            await make_agent(fake).current("Lathe")
        message = str(info.value)
        assert message.startswith("MTConnect agent reported one or more errors:")
        assert "- NO_DEVICE: Could not find the device 'Lathe'" in message

    @pytest.mark.asyncio
    async def test_not_xml(self):
        fake = FakeAgent(httpx.Response(200, text="<html><body>hello"))
        with pytest.raises(AgentError, match="did not answer with an XML document"):
            await make_agent(fake).probe()

    @pytest.mark.asyncio
    async def test_transport_errors_are_not_wrapped(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        agent = Agent("agent.local", transport=httpx.MockTransport(refuse))
        with pytest.raises(httpx.ConnectError):
            await agent.probe()

    def test_assert_no_errors_passes_normal_documents(self):
        document = Document.parse(STREAMS_XML.encode())
        assert assert_no_errors(document) is document


class TestStreams:
    @pytest.mark.asyncio
    async def test_current_stream(self):
        body = multipart_body([sample_document(n) for n in (1, 2, 3)])
        fake = FakeAgent(httpx.Response(200, content=body, headers={"content-type": MULTIPART_CONTENT_TYPE}))
        stream = await make_agent(fake).current_stream(1000, "Mill", path="//Events")
        async with stream:
            documents = [document async for document in stream]

        assert len(documents) == 3
        assert fake.last.url.path == "/Mill/current"
        assert dict(fake.last.url.params) == {"path": "//Events", "interval": "1000"}

    @pytest.mark.asyncio
    async def test_sample_stream_honours_cancellation(self):
        token = CancellationToken()
        body = multipart_body([sample_document(n) for n in (1, 2, 3)])
        fake = FakeAgent(httpx.Response(200, content=body, headers={"content-type": MULTIPART_CONTENT_TYPE}))
        stream = await make_agent(fake).sample_stream(500, from_=1, count=100, cancellation=token)
        assert await stream.next() is not None
        token.cancel()
        assert await stream.next() is None
        assert stream.exhausted
        assert dict(fake.last.url.params) == {"from": "1", "interval": "500", "count": "100"}

    @pytest.mark.asyncio
    async def test_error_section_ends_the_stream(self):
        body = multipart_body([sample_document(1), ERROR_XML])
        fake = FakeAgent(httpx.Response(200, content=body, headers={"content-type": MULTIPART_CONTENT_TYPE}))
        stream = await make_agent(fake).current_stream(100)
        assert await stream.next() is not None
        with pytest.raises(AgentError):
            await stream.next()

    @pytest.mark.asyncio
    async def test_stream_status_failure(self):
        fake = FakeAgent(httpx.Response(500))
        with pytest.raises(AgentError, match="500"):
            await make_agent(fake).current_stream(100)
