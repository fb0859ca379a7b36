"""Shared-secret verification for inbound Telegram webhook calls."""

from __future__ import annotations

import hmac
from collections.abc import Mapping

from relaybot.errors import UnauthorizedError

SECRET_HEADER = "x-telegram-bot-api-secret-token"


class WebhookSecurityService:
    """Checks the secret token Telegram echoes back on every webhook delivery."""

    def __init__(self, *, secret: str) -> None:
        self._secret = secret

    def verify(self, *, headers: Mapping[str, str]) -> None:
        if not self._secret:
            raise UnauthorizedError("Webhook secret not configured")

        token = headers.get(SECRET_HEADER, "")
        if not token:
            raise UnauthorizedError("Missing webhook secret token")
        if not hmac.compare_digest(token.encode("utf-8"), self._secret.encode("utf-8")):
            raise UnauthorizedError("Invalid webhook secret token")
