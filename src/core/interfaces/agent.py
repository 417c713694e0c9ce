"""Contract of an MTConnect agent client.

Design rules:
- Every request is asynchronous because it performs HTTP I/O.
- One-shot requests return a single `Document`; interval requests return an
  `AsyncDocumentStream` that the caller iterates and closes.
- Non-success answers raise `core.errors.AgentError`; transport failures are
  not wrapped.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.command.context import CancellationToken
from core.domain.models import Document
from core.streaming import AsyncDocumentStream


@runtime_checkable
class AgentClient(Protocol):
    @property
    def base_url(self) -> str: ...

    async def probe(self, device_name: str | None = None) -> Document: ...

    async def current(
        self,
        device_name: str | None = None,
        at: int | None = None,
        path: str | None = None,
    ) -> Document: ...

    async def current_stream(
        self,
        interval: int,
        device_name: str | None = None,
        at: int | None = None,
        path: str | None = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> AsyncDocumentStream: ...

    async def sample(
        self,
        device_name: str | None = None,
        from_: int | None = None,
        path: str | None = None,
        count: int | None = None,
    ) -> Document: ...

    async def sample_stream(
        self,
        interval: int,
        device_name: str | None = None,
        from_: int | None = None,
        path: str | None = None,
        count: int | None = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> AsyncDocumentStream: ...

    async def asset(
        self,
        asset_id: str | None = None,
        type_: str | None = None,
        removed: str | None = None,
        count: int | None = None,
    ) -> Document: ...
