# podshop/api/routers/orders.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from podshop.api.deps import get_ctx, get_current_user, get_db, get_optional_user
from podshop.api.responses import dump, dump_many, ok
from podshop.context import AppContext
from podshop.domain.schemas import OrderCreateIn, OrderOut, VerifyPaymentIn
from podshop.services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


def get_service(db: Session, ctx: AppContext) -> OrderService:
    return OrderService(db, payment_gateway=ctx.payment_gateway, job_queue=ctx.job_queue)


@router.post("", status_code=201)
def create_order(
    payload: OrderCreateIn,
    user: dict | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_ctx),
):
    """
    Tworzy zamowienie PENDING i zamowienie w bramce platnosci.
    Fan-out do providerow dopiero po weryfikacji platnosci.
    """
    order, gateway_order = get_service(db, ctx).create_order(payload, user["userId"] if user else None)
    return ok(
        {
            "order": dump(OrderOut, order),
            "payment": {
                "orderId": gateway_order["id"],
                "amount": gateway_order["amount"],
                "currency": gateway_order["currency"],
                "keyId": ctx.payment_gateway.public_key,
            },
        }
    )


@router.post("/verify-payment")
def verify_payment(
    payload: VerifyPaymentIn,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_ctx),
):
    order = get_service(db, ctx).verify_payment(payload.order_id, payload.payment_id, payload.signature)
    return ok({"order": dump(OrderOut, order)}, message="Payment verified successfully")


@router.get("/my-orders")
def my_orders(
    user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_ctx),
):
    return ok({"orders": dump_many(OrderOut, get_service(db, ctx).list_user_orders(user["userId"]))})


@router.get("/{order_id}")
def get_order(
    order_id: int,
    user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_ctx),
):
    order = get_service(db, ctx).get_order(order_id, user["userId"], is_admin=user.get("role") == "ADMIN")
    return ok({"order": dump(OrderOut, order)})
