# podshop/api/routers/offers.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from podshop.api.deps import get_db
from podshop.api.responses import dump, dump_many, ok
from podshop.domain.schemas import ApplyOfferIn, OfferOut
from podshop.services.offer_service import OfferService

router = APIRouter(prefix="/api/offers", tags=["offers"])


@router.get("/active")
def active_offers(db: Session = Depends(get_db)):
    return ok({"offers": dump_many(OfferOut, OfferService(db).list_active())})


@router.get("/{offer_id}")
def get_offer(offer_id: int, db: Session = Depends(get_db)):
    return ok({"offer": dump(OfferOut, OfferService(db).get_active(offer_id))})


@router.post("/apply")
def apply_offer(payload: ApplyOfferIn, db: Session = Depends(get_db)):
    result = OfferService(db).apply(payload.offer_id, payload.cart_total, payload.product_ids)
    return ok(
        {
            "offer": dump(OfferOut, result["offer"]),
            "discount": str(result["discount"]),
            "finalTotal": str(result["final_total"]),
        }
    )
