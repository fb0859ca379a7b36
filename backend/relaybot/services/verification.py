"""Human-verification gate: captcha issuance, checking and the verified window."""

from __future__ import annotations

import logging
from typing import Callable, Optional
from uuid import uuid4

from relaybot.errors import StoreUnavailableError
from relaybot.schemas import ChatState, GateDecision, GateResult, TelegramMessage
from relaybot.services.content import ContentFetcher
from relaybot.services.kv_store import KeyValueStore
from relaybot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)

START_COMMAND = "/start"

# (is start command, resolved state) -> decision
TRANSITIONS: dict[tuple[bool, ChatState], GateDecision] = {
    (True, "verified"): "welcome",
    (True, "challenge_issued"): "issue_challenge",
    (True, "unverified"): "issue_challenge",
    (False, "challenge_issued"): "check_challenge",
    (False, "unverified"): "require_start",
    (False, "verified"): "admit",
}


def captcha_key(chat_id: str) -> str:
    return f"captcha-{chat_id}"


def verified_key(chat_id: str) -> str:
    return f"verified-{chat_id}"


def new_challenge_code() -> str:
    return uuid4().hex[:6].upper()


def normalize_code(text: Optional[str]) -> str:
    return (text or "").strip().upper()


def is_start_command(text: Optional[str]) -> bool:
    return (text or "").strip() == START_COMMAND


class VerificationGate:
    """Decides whether a chat may use the relay, replying on its behalf when not.

    Each update performs at most one challenge/record mutation and one reply.
    """

    def __init__(
        self,
        *,
        store: KeyValueStore,
        gateway: TelegramGateway,
        content: ContentFetcher,
        welcome_url: str,
        captcha_ttl_seconds: int = 300,
        verified_ttl_seconds: int = 86_400,
        code_factory: Callable[[], str] = new_challenge_code,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._content = content
        self._welcome_url = welcome_url
        self._captcha_ttl_seconds = captcha_ttl_seconds
        self._verified_ttl_seconds = verified_ttl_seconds
        self._code_factory = code_factory

    def resolve_state(self, chat_id: str, *, is_start: bool) -> ChatState:
        """A /start from a verified chat sees `verified`; otherwise a live challenge wins."""
        try:
            verified = bool(self._store.get(verified_key(chat_id)))
            if is_start and verified:
                return "verified"
            if self._store.get(captcha_key(chat_id)):
                return "challenge_issued"
        except StoreUnavailableError:
            logger.warning("Store unavailable while verifying chat %s; treating as unverified", chat_id)
            return "unverified"
        return "verified" if verified else "unverified"

    def check(self, message: TelegramMessage) -> GateResult:
        chat_id = message.chat_id
        is_start = is_start_command(message.text)
        state = self.resolve_state(chat_id, is_start=is_start)
        decision = TRANSITIONS[(is_start, state)]

        if decision == "welcome":
            self._gateway.send_message(chat_id, self._content.fetch_text(self._welcome_url))
        elif decision == "issue_challenge":
            self._issue_challenge(chat_id)
        elif decision == "check_challenge":
            self._check_challenge(chat_id, message.text)
        elif decision == "require_start":
            logger.info("Chat %s is not verified", chat_id)
            self._gateway.send_message(
                chat_id,
                f"Please send {START_COMMAND} and pass the human verification first.",
            )

        return GateResult(state=state, decision=decision, admitted=decision == "admit")

    def _issue_challenge(self, chat_id: str) -> None:
        code = normalize_code(self._code_factory())
        self._store.put(captcha_key(chat_id), code, ttl_seconds=self._captcha_ttl_seconds)
        logger.info("Issued challenge to chat %s", chat_id)
        minutes = max(self._captcha_ttl_seconds // 60, 1)
        self._gateway.send_message(
            chat_id,
            "🤖 To make sure you are not a bot, please enter the following code:\n\n"
            f"👉 <b>{code}</b>\n\n"
            f"(valid for {minutes} minutes)",
            parse_mode="HTML",
        )

    def _check_challenge(self, chat_id: str, text: Optional[str]) -> None:
        expected = self._store.get(captcha_key(chat_id))
        if expected and normalize_code(text) == expected:
            self._store.put(verified_key(chat_id), True, ttl_seconds=self._verified_ttl_seconds)
            self._store.delete(captcha_key(chat_id))
            logger.info("Chat %s passed verification", chat_id)
            self._gateway.send_message(chat_id, "✅ Verification passed! You can now talk to the bot.")
            return

        logger.info("Chat %s entered a wrong code", chat_id)
        self._gateway.send_message(chat_id, "❌ Wrong code, please try again.")
