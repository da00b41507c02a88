from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Boolean, DateTime

from podshop.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class SettingModel(Base):
    __tablename__ = "settings"

    key = Column(String(120), primary_key=True)
    value = Column(Text, nullable=False)
    encrypted = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
