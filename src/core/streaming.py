"""Decoding of multipart streamed responses into a sequence of documents.

An agent asked for `current`/`sample` with an interval answers with one
never-ending `multipart/x-mixed-replace` body; every section is a complete XML
document. This module splits such a body into documents:

- `SectionReader` is a sans-IO state machine. Bytes go in with `feed`, end of
  input is signalled with `finish`, and `next_section` hands out complete
  sections one at a time.
- `AsyncDocumentStream` and `DocumentStream` drive a reader from an async or a
  plain byte iterator and parse each section. Both are pull-based, single-use
  and stop quietly when their cancellation token is set between sections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import AsyncIterable, Awaitable, Callable, Iterable, Mapping

from core.command.context import CancellationToken
from core.domain.models import Document
from core.errors import ProtocolError, ProtocolErrorKind

logger = logging.getLogger(__name__)

DocumentParser = Callable[[bytes], Document]


def parse_boundary(content_type: str | None) -> str:
    """Extract the `boundary` parameter of a multipart content type."""

    for param in (content_type or "").split(";")[1:]:
        key, sep, value = param.partition("=")
        if sep and key.strip().lower() == "boundary":
            boundary = value.strip().strip('"')
            if boundary:
                return boundary
    raise ProtocolError(
        ProtocolErrorKind.MISSING_BOUNDARY,
        f"Content type {content_type!r} does not declare a multipart boundary.",
    )


@dataclass(frozen=True)
class Section:
    headers: Mapping[str, str]
    body: bytes


class _State(Enum):
    SEEK_BOUNDARY = "seek_boundary"
    HEADERS = "headers"
    BODY = "body"
    DONE = "done"


class SectionReader:
    """Incremental multipart section splitter.

    Text between sections (preamble, transport padding) is skipped. A body is
    read by its `Content-Length` header when present, otherwise up to the next
    delimiter. Input ending inside headers or a body raises
    `ProtocolError(TRUNCATED_SECTION)`; input ending between sections, or a
    closing `--boundary--`, ends the sequence.
    """

    def __init__(self, boundary: str) -> None:
        self._delimiter = b"--" + boundary.encode("latin-1")
        self._buffer = bytearray()
        self._state = _State.SEEK_BOUNDARY
        self._headers: dict[str, str] = {}
        self._eof = False

    @property
    def done(self) -> bool:
        return self._state is _State.DONE

    def feed(self, data: bytes) -> None:
        if self._state is not _State.DONE:
            self._buffer.extend(data)

    def finish(self) -> None:
        self._eof = True

    def next_section(self) -> Section | None:
        """Next complete section, or `None` when more input is needed or input is over."""

        while self._state is not _State.DONE:
            if self._state is _State.SEEK_BOUNDARY:
                progressed = self._seek_boundary()
            elif self._state is _State.HEADERS:
                progressed = self._read_headers()
            else:
                section = self._read_body()
                if section is not None:
                    return section
                progressed = False
            if not progressed:
                break

        if self._eof and self._state is not _State.DONE:
            if self._state is not _State.SEEK_BOUNDARY:
                raise ProtocolError(
                    ProtocolErrorKind.TRUNCATED_SECTION,
                    "The stream ended in the middle of a section.",
                )
            self._state = _State.DONE
            self._buffer.clear()
        return None

    def _seek_boundary(self) -> bool:
        buffer = self._buffer
        index = buffer.find(self._delimiter)
        if index < 0:
            keep = len(self._delimiter) - 1
            if len(buffer) > keep:
                del buffer[: len(buffer) - keep]
            return False

        after = index + len(self._delimiter)
        if len(buffer) < after + 2:
            return False
        if buffer[after : after + 2] == b"--":
            self._state = _State.DONE
            buffer.clear()
            return True

        line_end = buffer.find(b"\n", after)
        if line_end < 0:
            return False
        del buffer[: line_end + 1]
        self._headers = {}
        self._state = _State.HEADERS
        return True

    def _read_headers(self) -> bool:
        buffer = self._buffer
        while True:
            line_end = buffer.find(b"\n")
            if line_end < 0:
                return False
            line = bytes(buffer[:line_end]).rstrip(b"\r")
            del buffer[: line_end + 1]
            if not line:
                self._state = _State.BODY
                return True

            name, sep, value = line.decode("latin-1").partition(":")
            if not sep:
                raise ProtocolError(ProtocolErrorKind.MALFORMED_SECTION, f"Malformed section header {line!r}.")
            self._headers[name.strip().lower()] = value.strip()

    def _content_length(self) -> int | None:
        raw = self._headers.get("content-length")
        if raw is None:
            return None
        if not (raw.isascii() and raw.isdigit()):
            raise ProtocolError(ProtocolErrorKind.MALFORMED_SECTION, f"Invalid Content-Length {raw!r}.")
        return int(raw)

    def _read_body(self) -> Section | None:
        buffer = self._buffer
        length = self._content_length()
        if length is not None:
            if len(buffer) < length:
                return None
            body = bytes(buffer[:length])
            del buffer[:length]
        elif buffer.startswith(self._delimiter):
            body = b""
        else:
            index = buffer.find(b"\n" + self._delimiter)
            if index < 0:
                return None
            body = bytes(buffer[:index])
            if body.endswith(b"\r"):
                body = body[:-1]
            del buffer[: index + 1]

        self._state = _State.SEEK_BOUNDARY
        return Section(headers=MappingProxyType(self._headers), body=body)


class _DocumentStreamBase:
    def __init__(
        self,
        content_type: str | None,
        *,
        parse: DocumentParser,
        cancellation: CancellationToken | None,
    ) -> None:
        self._reader = SectionReader(parse_boundary(content_type))
        self._parse = parse
        self._cancellation = cancellation
        self._exhausted = False
        self.documents_read = 0

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def _cancel_requested(self) -> bool:
        if self._cancellation is not None and self._cancellation.cancelled:
            logger.debug("Stream cancelled after %d documents", self.documents_read)
            return True
        return False

    def _parse_section(self, section: Section) -> Document:
        try:
            document = self._parse(section.body)
        except ProtocolError:
            raise
        except (SyntaxError, ValueError) as exc:
            raise ProtocolError(
                ProtocolErrorKind.MALFORMED_SECTION,
                f"Section {self.documents_read + 1} is not a valid document: {exc}",
            ) from exc
        self.documents_read += 1
        logger.debug("Decoded section %d (%d bytes)", self.documents_read, len(section.body))
        return document


class AsyncDocumentStream(_DocumentStreamBase):
    """Documents from an async byte stream, one per multipart section.

    `await stream.next()` returns the next document or `None` at the end of
    the stream; `async for` works as well. Reaching the end, failing, or
    observing cancellation closes the stream and releases it through
    `on_close`.
    """

    def __init__(
        self,
        chunks: AsyncIterable[bytes],
        content_type: str | None,
        *,
        parse: DocumentParser = Document.parse,
        cancellation: CancellationToken | None = None,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__(content_type, parse=parse, cancellation=cancellation)
        self._chunks = chunks.__aiter__()
        self._on_close = on_close

    async def next(self) -> Document | None:
        if self._exhausted:
            return None
        if self._cancel_requested():
            await self.aclose()
            return None

        try:
            section = await self._next_section()
            if section is None or self._cancel_requested():
                await self.aclose()
                return None
            return self._parse_section(section)
        except BaseException:
            await self.aclose()
            raise

    async def _next_section(self) -> Section | None:
        while True:
            section = self._reader.next_section()
            if section is not None or self._reader.done:
                return section
            if self._cancellation is not None and self._cancellation.cancelled:
                return None
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._reader.finish()
                continue
            self._reader.feed(chunk)

    async def aclose(self) -> None:
        if self._exhausted:
            return
        self._exhausted = True
        close_chunks = getattr(self._chunks, "aclose", None)
        if close_chunks is not None:
            await close_chunks()
        if self._on_close is not None:
            await self._on_close()
        logger.debug("Stream released after %d documents", self.documents_read)

    def __aiter__(self) -> "AsyncDocumentStream":
        return self

    async def __anext__(self) -> Document:
        document = await self.next()
        if document is None:
            raise StopAsyncIteration
        return document

    async def __aenter__(self) -> "AsyncDocumentStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class DocumentStream(_DocumentStreamBase):
    """Blocking counterpart of `AsyncDocumentStream` for thread-based callers."""

    def __init__(
        self,
        chunks: Iterable[bytes],
        content_type: str | None,
        *,
        parse: DocumentParser = Document.parse,
        cancellation: CancellationToken | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(content_type, parse=parse, cancellation=cancellation)
        self._chunks = iter(chunks)
        self._on_close = on_close

    def next(self) -> Document | None:
        if self._exhausted:
            return None
        if self._cancel_requested():
            self.close()
            return None

        try:
            section = self._next_section()
            if section is None or self._cancel_requested():
                self.close()
                return None
            return self._parse_section(section)
        except BaseException:
            self.close()
            raise

    def _next_section(self) -> Section | None:
        while True:
            section = self._reader.next_section()
            if section is not None or self._reader.done:
                return section
            if self._cancellation is not None and self._cancellation.cancelled:
                return None
            chunk = next(self._chunks, None)
            if chunk is None:
                self._reader.finish()
                continue
            self._reader.feed(chunk)

    def close(self) -> None:
        if self._exhausted:
            return
        self._exhausted = True
        close_chunks = getattr(self._chunks, "close", None)
        if close_chunks is not None:
            close_chunks()
        if self._on_close is not None:
            self._on_close()
        logger.debug("Stream released after %d documents", self.documents_read)

    def __iter__(self) -> "DocumentStream":
        return self

    def __next__(self) -> Document:
        document = self.next()
        if document is None:
            raise StopIteration
        return document

    def __enter__(self) -> "DocumentStream":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
