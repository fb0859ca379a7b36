"""Pydantic schemas for Telegram updates and relay outcomes."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["operator", "guest"]
ChatState = Literal["unverified", "challenge_issued", "verified"]
GateDecision = Literal[
    "welcome",
    "issue_challenge",
    "check_challenge",
    "require_start",
    "admit",
]
DispatchAction = Literal[
    "ignored",
    "gated",
    "relayed",
    "forward_failed",
    "blocked",
    "replied",
    "reply_failed",
    "usage",
    "unknown_route",
    "block",
    "unblock",
    "checkblock",
    "self_block",
]


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str
    type: Optional[str] = None


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    message_id: int
    chat: TelegramChat
    text: Optional[str] = None
    reply_to_message: Optional["TelegramMessage"] = None

    @property
    def chat_id(self) -> str:
        return str(self.chat.id)


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    update_id: Optional[int] = None
    message: Optional[TelegramMessage] = None


class GatewayResult(BaseModel):
    """Outcome of one Bot API call: `ok` plus the created message id, if any."""

    ok: bool
    message_id: Optional[int] = None
    description: Optional[str] = None
    payload: dict = Field(default_factory=dict)


class GateResult(BaseModel):
    state: ChatState
    decision: GateDecision
    admitted: bool = False


class DispatchOutcome(BaseModel):
    chat_id: Optional[str] = None
    role: Optional[Role] = None
    gate: Optional[GateDecision] = None
    action: DispatchAction
    target_chat_id: Optional[str] = None
    forwarded_message_id: Optional[int] = None
    fraud_alert: bool = False
    notified: bool = False


TelegramMessage.model_rebuild()
