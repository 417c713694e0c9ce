"""MTConnect agent client over httpx.

Implements `core.interfaces.agent.AgentClient`:

- `probe`, `current`, `sample`, `asset`: one request, one `Document`.
- `current_stream`, `sample_stream`: the same requests with an `interval`;
  the agent keeps the response open and pushes one multipart section per
  interval, decoded by `core.streaming.AsyncDocumentStream`.

Every document, one-shot or streamed, is checked with `assert_no_errors`.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from adapters.http_client import build_async_client
from core.command.context import CancellationToken
from core.config import AppSettings
from core.domain.models import Document
from core.errors import AgentError
from core.streaming import AsyncDocumentStream

logger = logging.getLogger(__name__)


def normalize_agent_url(url: str) -> str:
    """Assume `http://` when the user typed a bare `host:port`."""

    url = url.strip()
    if "://" not in url:
        url = "http://" + url
    return url


def assert_no_errors(document: Document) -> Document:
    """Raise `AgentError` when the document is an MTConnect error report."""

    errors = document.find_all("Errors")
    if not errors:
        return document

    lines = ["MTConnect agent reported one or more errors:"]
    for container in errors:
        entries = list(container) or [container]
        for entry in entries:
            code = entry.get("errorCode")
            text = "".join(entry.itertext()).strip()
            lines.append(f"- {code}: {text}" if code else f"- {text}")
    raise AgentError("\n".join(lines))


def _parse_checked(data: bytes) -> Document:
    return assert_no_errors(Document.parse(data))


def _query(**values: Any) -> dict[str, str]:
    return {key: str(value) for key, value in values.items() if value is not None}


class Agent:
    def __init__(
        self,
        base_url: str,
        *,
        settings: AppSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = normalize_agent_url(base_url).rstrip("/")
        self._settings = settings or AppSettings()
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def build_url(self, *segments: str | None) -> str:
        """Append the non-blank `segments` to the base URL path."""

        parts = [segment.strip("/") for segment in segments if segment and segment.strip()]
        return "/".join([self._base_url, *parts]) if parts else self._base_url

    async def probe(self, device_name: str | None = None) -> Document:
        return await self._request_document(self.build_url(device_name), {})

    async def current(
        self,
        device_name: str | None = None,
        at: int | None = None,
        path: str | None = None,
    ) -> Document:
        url = self.build_url(device_name, "current")
        return await self._request_document(url, _query(at=at, path=path))

    async def current_stream(
        self,
        interval: int,
        device_name: str | None = None,
        at: int | None = None,
        path: str | None = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> AsyncDocumentStream:
        url = self.build_url(device_name, "current")
        return await self._open_stream(url, _query(at=at, path=path, interval=interval), cancellation)

    async def sample(
        self,
        device_name: str | None = None,
        from_: int | None = None,
        path: str | None = None,
        count: int | None = None,
    ) -> Document:
        url = self.build_url(device_name, "sample")
        # "from" is a reserved word.
        return await self._request_document(url, _query(**{"from": from_}, path=path, count=count))

    async def sample_stream(
        self,
        interval: int,
        device_name: str | None = None,
        from_: int | None = None,
        path: str | None = None,
        count: int | None = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> AsyncDocumentStream:
        url = self.build_url(device_name, "sample")
        params = _query(**{"from": from_}, path=path, interval=interval, count=count)
        return await self._open_stream(url, params, cancellation)

    async def asset(
        self,
        asset_id: str | None = None,
        type_: str | None = None,
        removed: str | None = None,
        count: int | None = None,
    ) -> Document:
        if asset_id and asset_id.strip():
            url = self.build_url("asset", asset_id)
        else:
            url = self.build_url("assets")
        return await self._request_document(url, _query(type=type_, removed=removed, count=count))

    @staticmethod
    def _check_status(response: httpx.Response) -> None:
        if response.status_code != httpx.codes.OK:
            raise AgentError(
                f"MTConnect Agent reported failure: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

    async def _request_document(self, url: str, params: dict[str, str]) -> Document:
        logger.debug("GET %s params=%s", url, params)
        async with build_async_client(self._settings, transport=self._transport) as client:
            response = await client.get(url, params=params)
        self._check_status(response)
        try:
            document = Document.parse(response.content)
        except ET.ParseError as exc:
            raise AgentError(f"The agent at {url} did not answer with an XML document: {exc}") from exc
        return assert_no_errors(document)

    async def _open_stream(
        self,
        url: str,
        params: dict[str, str],
        cancellation: CancellationToken | None,
    ) -> AsyncDocumentStream:
        logger.debug("GET %s params=%s (streaming)", url, params)
        client = build_async_client(self._settings, streaming=True, transport=self._transport)
        try:
            response = await client.send(client.build_request("GET", url, params=params), stream=True)
        except BaseException:
            await client.aclose()
            raise

        async def release() -> None:
            await response.aclose()
            await client.aclose()

        try:
            self._check_status(response)
            return AsyncDocumentStream(
                response.aiter_bytes(),
                response.headers.get("content-type"),
                parse=_parse_checked,
                cancellation=cancellation,
                on_close=release,
            )
        except BaseException:
            await release()
            raise


def is_devices_document(document: Document) -> bool:
    return document.root_name == "MTConnectDevices"
