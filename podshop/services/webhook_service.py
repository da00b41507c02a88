# podshop/services/webhook_service.py
import hashlib
import json

from sqlalchemy.orm import Session

from podshop.data.models.webhook_event import WebhookEventModel
from podshop.providers.base import ProviderType
from podshop.providers.registry import ProviderRegistry
from podshop.repos.webhook_repo import WebhookRepo
from podshop.utils.errors import InvalidSignatureError, ValidationError
from podshop.utils.logging import get_logger

logger = get_logger(__name__)


def parse_payload(raw_body: bytes) -> dict:
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise ValidationError("Webhook body is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")
    return payload


def fallback_event_key(raw_body: bytes) -> str:
    return "sha256:" + hashlib.sha256(raw_body).hexdigest()


class WebhookProcessor:
    """
    Use Case: przetworzenie webhooka providera.

    resolve adaptera -> weryfikacja podpisu -> process_webhook.
    Zdarzenie o kluczu juz przetworzonym nie jest stosowane drugi raz.
    """

    def __init__(self, db: Session, registry: ProviderRegistry):
        self.db = db
        self.registry = registry
        self.repo = WebhookRepo(db)

    def event_key(self, provider: ProviderType | str, payload: dict, raw_body: bytes) -> str:
        adapter = self.registry.get(provider)
        try:
            key = adapter.event_key(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Cannot derive event key from {adapter.provider.value} payload: {e}")
            key = None
        return key or fallback_event_key(raw_body)

    def process(self, provider: ProviderType | str, payload: dict, signature: str | None, raw_body: bytes) -> bool:
        provider = ProviderType.parse(provider)
        adapter = self.registry.get(provider)

        if not adapter.verify_webhook(raw_body, signature):
            raise InvalidSignatureError(f"Invalid {provider.value} webhook signature")

        key = self.event_key(provider, payload, raw_body)
        if self.repo.is_processed(provider.value, key):
            logger.info(f"{provider.value} webhook {key} already processed, skipping")
            return False

        return adapter.process_webhook(self.db, payload)


class WebhookAudit:
    """Log WebhookEvent przed i po przetworzeniu, niezaleznie od wyniku."""

    def __init__(self, db: Session):
        self.repo = WebhookRepo(db)

    def record_receipt(self, provider: str, event, payload: dict, signature: str | None, event_key: str | None):
        return self.repo.log_event(
            WebhookEventModel(
                provider=provider,
                event=str(event) if event else "unknown",
                event_key=event_key,
                data=payload,
                signature=signature,
                processed=False,
            )
        )

    def mark_processed(self, event: WebhookEventModel):
        self.repo.mark_processed(event.id)
