"""Guest/operator relay and the forwarded-message mapping it depends on."""

from __future__ import annotations

import logging
from typing import Optional

from relaybot.errors import UnknownRouteError
from relaybot.schemas import GatewayResult, TelegramMessage
from relaybot.services.kv_store import KeyValueStore
from relaybot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)

OPERATOR_USAGE = (
    "Usage: reply to a forwarded message to answer its sender, "
    "or reply with /block /unblock /checkblock"
)


def mapping_key(message_id: int | str) -> str:
    return f"msg-map-{message_id}"


class MessageMappingStore:
    """Maps an operator-side forwarded message id back to the guest chat it came from.

    Entries are never deleted; message ids only grow, so keys do not collide.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def record(self, forwarded_message_id: int | str, guest_chat_id: str) -> None:
        self._store.put(mapping_key(forwarded_message_id), str(guest_chat_id))

    def resolve(self, message_id: int | str) -> Optional[str]:
        value = self._store.get(mapping_key(message_id))
        return str(value) if value is not None else None

    def require(self, message_id: int | str) -> str:
        guest_chat_id = self.resolve(message_id)
        if guest_chat_id is None:
            raise UnknownRouteError(message_id)
        return guest_chat_id


class Relay:
    """Forwards guest messages to the operator and copies operator replies back."""

    def __init__(
        self,
        *,
        gateway: TelegramGateway,
        mappings: MessageMappingStore,
        operator_chat_id: str,
    ) -> None:
        self._gateway = gateway
        self._mappings = mappings
        self._operator_chat_id = operator_chat_id

    def relay_guest_message(self, message: TelegramMessage) -> GatewayResult:
        result = self._gateway.forward_message(
            self._operator_chat_id,
            message.chat_id,
            message.message_id,
        )
        if result.ok and result.message_id is not None:
            self._mappings.record(result.message_id, message.chat_id)
        else:
            logger.warning("Forward from chat %s failed: %s", message.chat_id, result.description)
        return result

    def relay_operator_reply(self, message: TelegramMessage) -> tuple[str, GatewayResult]:
        """Copy an operator reply to the guest behind the replied-to message.

        Raises UnknownRouteError when no mapping exists; callers must check the
        reply target is present first.
        """
        if message.reply_to_message is None:
            raise ValueError("Operator reply requires reply_to_message")
        guest_chat_id = self._mappings.require(message.reply_to_message.message_id)
        result = self._gateway.copy_message(guest_chat_id, message.chat_id, message.message_id)
        if not result.ok:
            logger.warning("Copy to chat %s failed: %s", guest_chat_id, result.description)
        return guest_chat_id, result

    def send_operator_usage(self) -> GatewayResult:
        return self._gateway.send_message(self._operator_chat_id, OPERATOR_USAGE)

    def report_unknown_route(self, exc: UnknownRouteError) -> GatewayResult:
        logger.info("No mapping for replied-to message %s", exc.message_id)
        return self._gateway.send_message(
            self._operator_chat_id,
            f"No known sender for message {exc.message_id}; it may not be a forwarded guest message.",
        )
