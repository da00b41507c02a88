# podshop/api/routers/cart.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from podshop.api.deps import get_current_user, get_db
from podshop.api.responses import ok
from podshop.domain.schemas import CartUpdateIn
from podshop.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("")
def get_cart(user: dict = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok({"cart": CartService(db).get_cart(user["userId"])})


@router.put("")
def update_cart(payload: CartUpdateIn, user: dict = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok({"cart": CartService(db).update_cart(user["userId"], payload.items)})


@router.delete("")
def clear_cart(user: dict = Depends(get_current_user), db: Session = Depends(get_db)):
    CartService(db).clear_cart(user["userId"])
    return ok(message="Cart cleared")
