# podshop/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from podshop.api.deps import get_ctx, get_registry
from podshop.api.responses import ok
from podshop.context import AppContext
from podshop.providers import printful, printify, printrove
from podshop.providers.base import ProviderType
from podshop.providers.registry import ProviderRegistry
from podshop.services.order_service import OrderService
from podshop.services.webhook_service import (
    WebhookAudit,
    WebhookProcessor,
    fallback_event_key,
    parse_payload,
)
from podshop.utils.errors import AppError
from podshop.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

SIGNATURE_HEADERS = {
    ProviderType.PRINTROVE: printrove.SIGNATURE_HEADER,
    ProviderType.PRINTFUL: printful.SIGNATURE_HEADER,
    ProviderType.PRINTIFY: printify.SIGNATURE_HEADER,
}
RAZORPAY_SIGNATURE_HEADER = "x-razorpay-signature"

# Provider dostaje zawsze 200, bledy tylko w logach i w tabeli webhook_events


def _handle_provider_webhook(
    ctx: AppContext,
    registry: ProviderRegistry,
    provider: ProviderType,
    raw_body: bytes,
    signature: str | None,
):
    with ctx.session() as db:
        try:
            payload = parse_payload(raw_body)
        except AppError as e:
            logger.error(f"{provider.value} webhook rejected: {e.message}")
            return

        processor = WebhookProcessor(db, registry)
        audit = WebhookAudit(db)
        try:
            event = audit.record_receipt(
                provider.value,
                payload.get("event") or payload.get("type"),
                payload,
                signature,
                processor.event_key(provider, payload, raw_body),
            )
        except Exception:
            db.rollback()
            logger.exception(f"{provider.value} webhook receipt could not be logged")
            return

        try:
            changed = processor.process(provider, payload, signature, raw_body)
            audit.mark_processed(event)
            logger.info(f"{provider.value} webhook {event.event_key} handled, status changed: {changed}")
        except AppError as e:
            db.rollback()
            logger.error(f"{provider.value} webhook {event.event_key} failed: {e.message}")
        except Exception:
            db.rollback()
            logger.exception(f"{provider.value} webhook {event.event_key} failed")


def _handle_gateway_webhook(ctx: AppContext, raw_body: bytes, signature: str | None):
    with ctx.session() as db:
        try:
            payload = parse_payload(raw_body)
        except AppError as e:
            logger.error(f"RAZORPAY webhook rejected: {e.message}")
            return

        audit = WebhookAudit(db)
        try:
            event = audit.record_receipt(
                "RAZORPAY", payload.get("event"), payload, signature, fallback_event_key(raw_body)
            )
        except Exception:
            db.rollback()
            logger.exception("RAZORPAY webhook receipt could not be logged")
            return

        if not ctx.payment_gateway.verify_webhook_signature(raw_body, signature):
            logger.error("RAZORPAY webhook signature invalid")
            return

        try:
            OrderService(db, payment_gateway=ctx.payment_gateway, job_queue=ctx.job_queue).handle_gateway_event(payload)
            audit.mark_processed(event)
        except AppError as e:
            db.rollback()
            logger.error(f"RAZORPAY webhook failed: {e.message}")
        except Exception:
            db.rollback()
            logger.exception("RAZORPAY webhook failed")


@router.post("/razorpay")
async def razorpay_webhook(request: Request, ctx: AppContext = Depends(get_ctx)):
    raw_body = await request.body()
    await run_in_threadpool(
        _handle_gateway_webhook, ctx, raw_body, request.headers.get(RAZORPAY_SIGNATURE_HEADER)
    )
    return ok()


@router.post("/{provider}")
async def provider_webhook(
    provider: str,
    request: Request,
    ctx: AppContext = Depends(get_ctx),
    registry: ProviderRegistry = Depends(get_registry),
):
    raw_body = await request.body()
    try:
        provider_type = ProviderType.parse(provider)
    except AppError as e:
        logger.error(f"Webhook for unknown provider {provider}: {e.message}")
        return ok()

    await run_in_threadpool(
        _handle_provider_webhook,
        ctx,
        registry,
        provider_type,
        raw_body,
        request.headers.get(SIGNATURE_HEADERS[provider_type]),
    )
    return ok()
