# podshop/api/routers/admin.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from podshop.api.deps import get_ctx, get_db, require_admin
from podshop.api.responses import dump, dump_many, ok
from podshop.context import AppContext
from podshop.domain.order_status import OrderStatus
from podshop.domain.schemas import (
    OfferOut,
    OfferUpsertIn,
    OrderOut,
    OrderStatusIn,
    ProductOut,
    ProductUpsertIn,
    SettingsIn,
    SyncCatalogIn,
)
from podshop.providers.base import ProviderType
from podshop.services.admin_service import AdminService
from podshop.services.credential_service import CredentialService
from podshop.services.offer_service import OfferService
from podshop.services.order_service import OrderService
from podshop.services.product_service import ProductService
from podshop.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)):
    stats = AdminService(db).dashboard()
    return ok(
        {
            "totalOrders": stats["total_orders"],
            "totalRevenue": str(stats["total_revenue"]),
            "totalProducts": stats["total_products"],
            "totalUsers": stats["total_users"],
            "recentOrders": dump_many(OrderOut, stats["recent_orders"]),
        }
    )


@router.get("/orders")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: OrderStatus | None = None,
    db: Session = Depends(get_db),
):
    result = AdminService(db).list_orders(page, limit, status.value if status else None)
    return ok({"orders": dump_many(OrderOut, result["orders"]), "pagination": result["pagination"]})


@router.patch("/orders/{order_id}/status")
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_ctx),
):
    svc = OrderService(db, payment_gateway=ctx.payment_gateway, job_queue=ctx.job_queue)
    order = svc.update_status(order_id, OrderStatus(payload.status))
    return ok({"order": dump(OrderOut, order)}, message="Order status updated")


@router.get("/products")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    result = ProductService(db).list_all(page, limit)
    return ok({"products": dump_many(ProductOut, result["products"]), "pagination": result["pagination"]})


@router.post("/products")
def upsert_product(payload: ProductUpsertIn, db: Session = Depends(get_db)):
    product = ProductService(db).upsert(payload)
    return ok({"product": dump(ProductOut, product)}, message="Product saved")


@router.get("/offers")
def list_offers(db: Session = Depends(get_db)):
    return ok({"offers": dump_many(OfferOut, OfferService(db).list_all())})


@router.post("/offers")
def upsert_offer(payload: OfferUpsertIn, db: Session = Depends(get_db)):
    offer = OfferService(db).upsert(payload)
    return ok({"offer": dump(OfferOut, offer)}, message="Offer saved")


@router.get("/settings")
def get_settings(db: Session = Depends(get_db), ctx: AppContext = Depends(get_ctx)):
    return ok({"settings": CredentialService(db, ctx.cipher).list_settings()})


@router.put("/settings")
def update_settings(payload: SettingsIn, db: Session = Depends(get_db), ctx: AppContext = Depends(get_ctx)):
    updated = CredentialService(db, ctx.cipher).update_settings(payload.settings)
    return ok({"updated": updated}, message="Settings updated")


@router.post("/sync-catalog")
def sync_catalog(payload: SyncCatalogIn | None = None, ctx: AppContext = Depends(get_ctx)):
    # jeden job per provider
    providers = [ProviderType.parse(payload.provider)] if payload and payload.provider else list(ProviderType)
    for provider in providers:
        ctx.job_queue.enqueue_catalog_sync(provider)
    logger.info(f"Catalog sync queued for {', '.join(p.value for p in providers)}")
    return ok({"providers": [p.value for p in providers]}, message="Catalog sync started")
