# podshop/repos/offer_repo.py
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from podshop.data.models.offer import OfferModel, OfferProductModel


class OfferRepo:
    def __init__(self, db: Session):
        self.db = db

    def _active_filter(self, now: datetime):
        return (
            OfferModel.is_active.is_(True),
            OfferModel.valid_from <= now,
            OfferModel.valid_to >= now,
        )

    def list_active(self, now: datetime) -> list[OfferModel]:
        return list(
            self.db.execute(
                select(OfferModel)
                .where(*self._active_filter(now))
                .options(selectinload(OfferModel.products))
                .order_by(OfferModel.created_at.desc(), OfferModel.id.desc())
            ).scalars().all()
        )

    def get_active(self, offer_id: int, now: datetime) -> OfferModel | None:
        return self.db.execute(
            select(OfferModel)
            .where(OfferModel.id == offer_id, *self._active_filter(now))
            .options(selectinload(OfferModel.products))
        ).scalar_one_or_none()

    def get_offer(self, offer_id: int) -> OfferModel | None:
        return self.db.get(OfferModel, offer_id)

    def list_all(self) -> list[OfferModel]:
        return list(
            self.db.execute(
                select(OfferModel)
                .options(selectinload(OfferModel.products))
                .order_by(OfferModel.created_at.desc(), OfferModel.id.desc())
            ).scalars().all()
        )

    def save(self, offer: OfferModel, product_ids: list[int] | None = None) -> OfferModel:
        if product_ids is not None:
            offer.products = [OfferProductModel(product_id=pid) for pid in product_ids]
        self.db.add(offer)
        self.db.commit()
        self.db.refresh(offer)
        return offer

    def increment_usage(self, offer_id: int) -> int:
        # warunek na limit w samym UPDATE, bez read-then-write
        result = self.db.execute(
            update(OfferModel)
            .where(
                OfferModel.id == offer_id,
                (OfferModel.usage_limit.is_(None)) | (OfferModel.used_count < OfferModel.usage_limit),
            )
            .values(used_count=OfferModel.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()
