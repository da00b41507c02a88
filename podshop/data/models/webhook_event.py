from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index

from podshop.data.database import Base


class WebhookEventModel(Base):
    """Log audytowy webhookow, tylko insert + zmiana flagi processed."""

    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True)
    provider = Column(String(20), nullable=False)
    event = Column(String(120), nullable=False)
    # klucz idempotencji (id zdarzenia u providera)
    event_key = Column(String(255), nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    signature = Column(String(512), nullable=True)
    processed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("ix_webhook_provider_key", "provider", "event_key"),)
