"""Routes one inbound update through the gate and into the operator or guest branch."""

from __future__ import annotations

import logging

from relaybot.errors import UnknownRouteError
from relaybot.schemas import DispatchOutcome, Role, TelegramMessage, TelegramUpdate
from relaybot.services.access_control import AccessControlService, parse_operator_command
from relaybot.services.notifications import FraudDetector, NotificationThrottler
from relaybot.services.relay import Relay
from relaybot.services.verification import VerificationGate

logger = logging.getLogger(__name__)


class UpdateDispatcher:
    """Stateless per update; all coordination goes through the key-value store."""

    def __init__(
        self,
        *,
        operator_chat_id: str,
        gate: VerificationGate,
        relay: Relay,
        access: AccessControlService,
        fraud: FraudDetector,
        throttler: NotificationThrottler,
    ) -> None:
        self._operator_chat_id = operator_chat_id
        self._gate = gate
        self._relay = relay
        self._access = access
        self._fraud = fraud
        self._throttler = throttler

    def resolve_role(self, chat_id: str) -> Role:
        return "operator" if self._operator_chat_id and chat_id == self._operator_chat_id else "guest"

    def dispatch(self, update: TelegramUpdate) -> DispatchOutcome:
        message = update.message
        if message is None:
            return DispatchOutcome(action="ignored")

        chat_id = message.chat_id
        gate = self._gate.check(message)
        if not gate.admitted:
            return DispatchOutcome(chat_id=chat_id, gate=gate.decision, action="gated")

        role = self.resolve_role(chat_id)
        if role == "operator":
            outcome = self._handle_operator(message)
        else:
            outcome = self._handle_guest(message)
        outcome.gate = gate.decision
        outcome.role = role
        return outcome

    def _handle_operator(self, message: TelegramMessage) -> DispatchOutcome:
        chat_id = message.chat_id
        command = parse_operator_command(message.text)
        if command is not None:
            action, target = self._access.handle_command(command, message)
            return DispatchOutcome(chat_id=chat_id, action=action, target_chat_id=target)

        if message.reply_to_message is None:
            self._relay.send_operator_usage()
            return DispatchOutcome(chat_id=chat_id, action="usage")

        try:
            guest_chat_id, result = self._relay.relay_operator_reply(message)
        except UnknownRouteError as exc:
            self._relay.report_unknown_route(exc)
            return DispatchOutcome(chat_id=chat_id, action="unknown_route")
        return DispatchOutcome(
            chat_id=chat_id,
            action="replied" if result.ok else "reply_failed",
            target_chat_id=guest_chat_id,
        )

    def _handle_guest(self, message: TelegramMessage) -> DispatchOutcome:
        chat_id = message.chat_id
        if self._access.is_blocked(chat_id):
            self._access.reject_guest(chat_id)
            return DispatchOutcome(chat_id=chat_id, action="blocked")

        result = self._relay.relay_guest_message(message)
        if not result.ok:
            return DispatchOutcome(chat_id=chat_id, action="forward_failed")

        outcome = DispatchOutcome(
            chat_id=chat_id,
            action="relayed",
            target_chat_id=self._operator_chat_id,
            forwarded_message_id=result.message_id,
        )
        # A fraud alert stands in for the routine notification on that message.
        outcome.fraud_alert = self._fraud.check_and_alert(chat_id)
        if not outcome.fraud_alert:
            outcome.notified = self._throttler.maybe_notify(chat_id)
        return outcome
