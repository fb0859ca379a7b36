"""Telegram Bot API gateway (send / forward / copy / setWebhook)."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from relaybot.errors import ExternalCallError
from relaybot.schemas import GatewayResult

logger = logging.getLogger(__name__)


class TelegramGateway:
    """Posts Bot API methods and normalizes the `{ok, result}` envelope."""

    def __init__(
        self,
        *,
        bot_token: str,
        api_base_url: str = "https://api.telegram.org",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._bot_token = bot_token.strip()
        self._api_base_url = api_base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def method_url(self, method: str) -> str:
        return f"{self._api_base_url}/bot{self._bot_token}/{method}"

    def send_message(self, chat_id: str, text: str, parse_mode: Optional[str] = None) -> GatewayResult:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return self._call("sendMessage", payload)

    def forward_message(self, chat_id: str, from_chat_id: str, message_id: int) -> GatewayResult:
        return self._call(
            "forwardMessage",
            {"chat_id": chat_id, "from_chat_id": from_chat_id, "message_id": message_id},
        )

    def copy_message(self, chat_id: str, from_chat_id: str, message_id: int) -> GatewayResult:
        return self._call(
            "copyMessage",
            {"chat_id": chat_id, "from_chat_id": from_chat_id, "message_id": message_id},
        )

    def set_webhook(self, url: str, secret_token: Optional[str] = None) -> GatewayResult:
        payload: dict[str, Any] = {"url": url}
        if secret_token:
            payload["secret_token"] = secret_token
        return self._call("setWebhook", payload)

    def _call(self, method: str, payload: dict[str, Any]) -> GatewayResult:
        if not self._bot_token:
            raise ExternalCallError("Telegram bot token not configured")
        try:
            with httpx.Client(timeout=self._timeout_seconds, transport=self._transport) as client:
                res = client.post(self.method_url(method), json=payload)
            body = res.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalCallError(f"{method} failed: {exc}") from exc
        if not isinstance(body, dict):
            raise ExternalCallError(f"{method} returned a non-object response")

        result = body.get("result")
        message_id = result.get("message_id") if isinstance(result, dict) else None
        if not body.get("ok"):
            logger.warning("Telegram %s rejected: %s", method, body.get("description"))
        return GatewayResult(
            ok=bool(body.get("ok")),
            message_id=message_id,
            description=body.get("description"),
            payload=body,
        )
