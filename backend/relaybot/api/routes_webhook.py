"""Webhook endpoint plus webhook (un)registration routes."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import PlainTextResponse

from relaybot.config import get_settings
from relaybot.errors import ExternalCallError, UnauthorizedError
from relaybot.schemas import GatewayResult, TelegramUpdate
from relaybot.services.access_control import AccessControlService
from relaybot.services.content import ContentFetcher
from relaybot.services.dispatcher import UpdateDispatcher
from relaybot.services.kv_store import build_key_value_store
from relaybot.services.notifications import FraudDetector, NotificationThrottler
from relaybot.services.relay import MessageMappingStore, Relay
from relaybot.services.telegram_gateway import TelegramGateway
from relaybot.services.verification import VerificationGate
from relaybot.services.webhook_security import WebhookSecurityService

logger = logging.getLogger(__name__)

router = APIRouter()

_settings = get_settings()
_store = build_key_value_store(_settings)
_gateway = TelegramGateway(
    bot_token=_settings.bot_token,
    api_base_url=_settings.telegram_api_base_url,
    timeout_seconds=_settings.http_timeout_seconds,
)
_content = ContentFetcher(timeout_seconds=_settings.http_timeout_seconds)
_mappings = MessageMappingStore(_store)
_webhook_security = WebhookSecurityService(secret=_settings.bot_secret)
_dispatcher = UpdateDispatcher(
    operator_chat_id=_settings.admin_uid,
    gate=VerificationGate(
        store=_store,
        gateway=_gateway,
        content=_content,
        welcome_url=_settings.start_msg_url,
        captcha_ttl_seconds=_settings.captcha_ttl_seconds,
        verified_ttl_seconds=_settings.verified_ttl_seconds,
    ),
    relay=Relay(gateway=_gateway, mappings=_mappings, operator_chat_id=_settings.admin_uid),
    access=AccessControlService(
        store=_store,
        gateway=_gateway,
        mappings=_mappings,
        operator_chat_id=_settings.admin_uid,
    ),
    fraud=FraudDetector(
        gateway=_gateway,
        content=_content,
        fraud_db_url=_settings.fraud_db_url,
        operator_chat_id=_settings.admin_uid,
    ),
    throttler=NotificationThrottler(
        store=_store,
        gateway=_gateway,
        content=_content,
        notification_url=_settings.notification_url,
        operator_chat_id=_settings.admin_uid,
        enabled=_settings.enable_notification,
        interval_ms=_settings.notify_interval,
    ),
)


def get_dispatcher() -> UpdateDispatcher:
    return _dispatcher


def get_gateway() -> TelegramGateway:
    return _gateway


def get_webhook_security() -> WebhookSecurityService:
    return _webhook_security


def process_update(dispatcher: UpdateDispatcher, update: TelegramUpdate) -> None:
    """Handle one update after the webhook has been acknowledged.

    Failures stay confined to this update; Telegram owns redelivery.
    """
    try:
        outcome = dispatcher.dispatch(update)
    except Exception:
        logger.exception("Failed to handle update %s", update.update_id)
        return
    logger.debug("Update %s handled: %s", update.update_id, outcome.model_dump_json())


async def handle_webhook(
    raw_request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: UpdateDispatcher = Depends(get_dispatcher),
    security: WebhookSecurityService = Depends(get_webhook_security),
) -> PlainTextResponse:
    try:
        security.verify(headers=raw_request.headers)
    except UnauthorizedError as exc:
        logger.warning("Rejected webhook call: %s", exc)
        return PlainTextResponse("Unauthorized", status_code=403)

    try:
        update = TelegramUpdate.model_validate(await raw_request.json())
    except ValueError:
        return PlainTextResponse("Bad Request", status_code=400)

    background_tasks.add_task(process_update, dispatcher, update)
    return PlainTextResponse("Ok")


router.add_api_route(_settings.webhook_path, handle_webhook, methods=["POST"])


def _registration_response(result: GatewayResult) -> PlainTextResponse:
    if result.ok:
        return PlainTextResponse("Ok")
    return PlainTextResponse(json.dumps(result.payload, indent=2, ensure_ascii=False))


@router.get("/registerWebhook")
def register_webhook(
    raw_request: Request,
    gateway: TelegramGateway = Depends(get_gateway),
) -> PlainTextResponse:
    url = raw_request.url
    webhook_url = f"{url.scheme}://{url.hostname}{_settings.webhook_path}"
    try:
        result = gateway.set_webhook(webhook_url, secret_token=_settings.bot_secret)
    except ExternalCallError as exc:
        logger.error("setWebhook failed: %s", exc)
        return PlainTextResponse(str(exc), status_code=502)
    logger.info("Registered webhook %s: ok=%s", webhook_url, result.ok)
    return _registration_response(result)


@router.get("/unRegisterWebhook")
def unregister_webhook(gateway: TelegramGateway = Depends(get_gateway)) -> PlainTextResponse:
    try:
        result = gateway.set_webhook("")
    except ExternalCallError as exc:
        logger.error("setWebhook failed: %s", exc)
        return PlainTextResponse(str(exc), status_code=502)
    return _registration_response(result)
