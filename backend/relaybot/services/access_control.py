"""Block list and the operator commands that manage it."""

from __future__ import annotations

import logging
from typing import Literal, Optional

from relaybot.errors import UnknownRouteError
from relaybot.schemas import TelegramMessage
from relaybot.services.kv_store import KeyValueStore
from relaybot.services.relay import MessageMappingStore, OPERATOR_USAGE
from relaybot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)

OperatorCommand = Literal["block", "unblock", "checkblock"]
CommandOutcome = Literal["block", "unblock", "checkblock", "self_block", "usage", "unknown_route"]


def blocked_key(chat_id: str) -> str:
    return f"isblocked-{chat_id}"


def parse_operator_command(text: Optional[str]) -> Optional[OperatorCommand]:
    """Return the block-list command named by `text`, or None.

    Accepts an optional `@botname` suffix, as Telegram appends in groups.
    """
    cleaned = (text or "").strip()
    if not cleaned.startswith("/"):
        return None
    cmd = cleaned.split(maxsplit=1)[0].split("@", 1)[0].lower()
    if cmd in {"/block", "/unblock", "/checkblock"}:
        return cmd[1:]  # type: ignore[return-value]
    return None


class AccessControlService:
    """Stores BlockEntry flags. Unblock writes an explicit False instead of deleting."""

    def __init__(
        self,
        *,
        store: KeyValueStore,
        gateway: TelegramGateway,
        mappings: MessageMappingStore,
        operator_chat_id: str,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._mappings = mappings
        self._operator_chat_id = operator_chat_id

    def is_blocked(self, chat_id: str) -> bool:
        return bool(self._store.get(blocked_key(chat_id)))

    def reject_guest(self, chat_id: str) -> None:
        logger.info("Rejected message from blocked chat %s", chat_id)
        self._gateway.send_message(chat_id, "You are blocked.")

    def handle_command(
        self, command: OperatorCommand, message: TelegramMessage
    ) -> tuple[CommandOutcome, Optional[str]]:
        if message.reply_to_message is None:
            self._gateway.send_message(self._operator_chat_id, OPERATOR_USAGE)
            return "usage", None

        try:
            guest_chat_id = self._mappings.require(message.reply_to_message.message_id)
        except UnknownRouteError as exc:
            logger.info("/%s target %s has no mapping", command, exc.message_id)
            self._gateway.send_message(
                self._operator_chat_id,
                f"No known sender for message {exc.message_id}; reply to a forwarded guest message.",
            )
            return "unknown_route", None

        if command == "block":
            return self._block(guest_chat_id), guest_chat_id
        if command == "unblock":
            return self._unblock(guest_chat_id), guest_chat_id
        return self._check(guest_chat_id), guest_chat_id

    def _block(self, guest_chat_id: str) -> CommandOutcome:
        if guest_chat_id == self._operator_chat_id:
            self._gateway.send_message(self._operator_chat_id, "You cannot block yourself.")
            return "self_block"
        self._store.put(blocked_key(guest_chat_id), True)
        logger.info("Blocked chat %s", guest_chat_id)
        self._gateway.send_message(self._operator_chat_id, f"UID:{guest_chat_id} blocked")
        return "block"

    def _unblock(self, guest_chat_id: str) -> CommandOutcome:
        self._store.put(blocked_key(guest_chat_id), False)
        logger.info("Unblocked chat %s", guest_chat_id)
        self._gateway.send_message(self._operator_chat_id, f"UID:{guest_chat_id} unblocked")
        return "unblock"

    def _check(self, guest_chat_id: str) -> CommandOutcome:
        status = "is blocked" if self.is_blocked(guest_chat_id) else "is not blocked"
        self._gateway.send_message(self._operator_chat_id, f"UID:{guest_chat_id} {status}")
        return "checkblock"
