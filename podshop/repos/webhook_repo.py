# podshop/repos/webhook_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from podshop.data.models.webhook_event import WebhookEventModel


class WebhookRepo:
    def __init__(self, db: Session):
        self.db = db

    def log_event(self, event: WebhookEventModel) -> WebhookEventModel:
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def mark_processed(self, event_id: int):
        event = self.db.get(WebhookEventModel, event_id)
        if event:
            event.processed = True
            self.db.commit()

    def is_processed(self, provider: str, event_key: str) -> bool:
        return self.db.execute(
            select(WebhookEventModel.id).where(
                WebhookEventModel.provider == provider,
                WebhookEventModel.event_key == event_key,
                WebhookEventModel.processed.is_(True),
            )
        ).first() is not None
