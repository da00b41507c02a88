# podshop/api/routers/products.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from podshop.api.deps import get_current_user, get_db
from podshop.api.responses import dump, dump_many, ok
from podshop.domain.schemas import ProductOut
from podshop.services.product_service import ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: str | None = None,
    search: str | None = None,
    tags: str | None = Query(None, description="Tagi oddzielone przecinkami"),
    db: Session = Depends(get_db),
):
    result = ProductService(db).list_products(page, limit, category, search, tags)
    return ok({"products": dump_many(ProductOut, result["products"]), "pagination": result["pagination"]})


@router.get("/categories")
def categories(db: Session = Depends(get_db)):
    return ok({"categories": ProductService(db).categories()})


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    return ok({"product": dump(ProductOut, ProductService(db).get_product(product_id))})


@router.get("/{product_id}/related")
def related_products(product_id: int, db: Session = Depends(get_db)):
    return ok({"products": dump_many(ProductOut, ProductService(db).related_products(product_id))})


@router.post("/{product_id}/like")
def toggle_like(product_id: int, user: dict = Depends(get_current_user), db: Session = Depends(get_db)):
    liked = ProductService(db).toggle_like(user["userId"], product_id)
    return ok({"liked": liked}, message="Product liked" if liked else "Product unliked")
