"""httpx client builder.

Every request to an agent goes through `build_async_client`, so timeouts and
headers are the same for one-shot and streaming calls. Tests pass an
`httpx.MockTransport` through `transport`.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    streaming: bool = False,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with the application defaults.

    With `streaming=True` the read timeout is disabled: a streamed body stays
    silent between sections for as long as the requested interval.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/xml, text/xml;q=0.9, */*;q=0.8",
    }
    if extra_headers:
        headers.update(extra_headers)

    timeout = httpx.Timeout(settings.http_timeout_seconds)
    if streaming:
        timeout = httpx.Timeout(settings.http_timeout_seconds, read=None)

    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )
