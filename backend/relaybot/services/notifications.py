"""Out-of-band operator alerts: fraud list hits and throttled new-message notices."""

from __future__ import annotations

import logging
import time
from typing import Callable

from relaybot.errors import ExternalCallError
from relaybot.services.content import ContentFetcher
from relaybot.services.kv_store import KeyValueStore
from relaybot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)


def last_notify_key(chat_id: str) -> str:
    return f"lastmsg-{chat_id}"


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_fraud_list(raw: str) -> set[str]:
    return {line.strip() for line in raw.splitlines() if line.strip()}


class FraudDetector:
    """Checks chat ids against a remote newline-delimited list, fetched on every call."""

    def __init__(
        self,
        *,
        gateway: TelegramGateway,
        content: ContentFetcher,
        fraud_db_url: str,
        operator_chat_id: str,
    ) -> None:
        self._gateway = gateway
        self._content = content
        self._fraud_db_url = fraud_db_url.strip()
        self._operator_chat_id = operator_chat_id

    @property
    def enabled(self) -> bool:
        return bool(self._fraud_db_url)

    def is_listed(self, chat_id: str) -> bool:
        if not self.enabled:
            return False
        try:
            listed = parse_fraud_list(self._content.fetch_text(self._fraud_db_url))
        except ExternalCallError as exc:
            logger.warning("Fraud list fetch failed, skipping check for %s: %s", chat_id, exc)
            return False
        return str(chat_id).strip() in listed

    def check_and_alert(self, chat_id: str) -> bool:
        if not self.is_listed(chat_id):
            return False
        logger.warning("Fraud list hit for chat %s", chat_id)
        self._gateway.send_message(self._operator_chat_id, f"Fraud suspect detected, UID {chat_id}")
        return True


class NotificationThrottler:
    """Per-chat alert limiter: at most one alert per interval, no burst allowance."""

    def __init__(
        self,
        *,
        store: KeyValueStore,
        gateway: TelegramGateway,
        content: ContentFetcher,
        notification_url: str,
        operator_chat_id: str,
        enabled: bool,
        interval_ms: int = 3_600_000,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._content = content
        self._notification_url = notification_url
        self._operator_chat_id = operator_chat_id
        self._enabled = enabled
        self._interval_ms = max(interval_ms, 0)
        self._clock_ms = clock_ms

    def should_notify(self, chat_id: str, now: int) -> bool:
        last = self._store.get(last_notify_key(chat_id))
        return not last or now - int(last) > self._interval_ms

    def maybe_notify(self, chat_id: str) -> bool:
        if not self._enabled:
            return False
        now = self._clock_ms()
        if not self.should_notify(chat_id, now):
            logger.debug("Notification for chat %s suppressed", chat_id)
            return False
        text = self._content.fetch_text(self._notification_url)
        result = self._gateway.send_message(self._operator_chat_id, text)
        if not result.ok:
            logger.warning("Notification for chat %s not delivered: %s", chat_id, result.description)
            return False
        self._store.put(last_notify_key(chat_id), now)
        logger.info("Notified operator about chat %s", chat_id)
        return True
