"""Plain-text content fetches (welcome text, notification text, fraud list)."""

from __future__ import annotations

from typing import Optional

import httpx

from relaybot.errors import ExternalCallError


class ContentFetcher:
    """Fetches remote text fresh on every call; nothing is cached."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def fetch_text(self, url: str) -> str:
        if not url:
            raise ExternalCallError("Content URL not configured")
        try:
            with httpx.Client(timeout=self._timeout_seconds, transport=self._transport) as client:
                res = client.get(url)
                res.raise_for_status()
        except httpx.HTTPError as exc:
            raise ExternalCallError(f"fetch {url} failed: {exc}") from exc
        return res.text
