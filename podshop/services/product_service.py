# podshop/services/product_service.py
from sqlalchemy.orm import Session

from podshop.data.models.product import ProductModel, ProviderMappingModel, ProductLikeModel
from podshop.domain.schemas import ProductUpsertIn
from podshop.providers.normalizer import DEFAULT_COST_RATIO, base_title, to_money
from podshop.repos.product_repo import ProductRepo
from podshop.utils.errors import ConcurrencyConflict, NotFoundError
from podshop.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


class ProductService:
    """Katalog sklepu: odczyt publiczny, polubienia i edycja z panelu admina."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def list_products(
        self,
        page: int = 1,
        limit: int = 20,
        category: str | None = None,
        search: str | None = None,
        tags: str | None = None,
    ) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None

        products, total = self.repo.list_public_products(page, limit, category, search, tag_list)
        return {
            "products": products,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        }

    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_public_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def related_products(self, product_id: int) -> list[ProductModel]:
        return self.repo.list_related(self.get_product(product_id))

    def toggle_like(self, user_id: int, product_id: int) -> bool:
        """Zwraca True gdy produkt jest polubiony po operacji."""
        self.get_product(product_id)
        like = self.repo.get_like(user_id, product_id)
        if like:
            self.repo.delete_like(like)
            return False
        self.repo.add_like(ProductLikeModel(user_id=user_id, product_id=product_id))
        return True

    def categories(self) -> list[str]:
        return self.repo.list_categories()

    # admin
    def list_all(self, page: int = 1, limit: int = 20) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        products, total = self.repo.list_all_products(page, limit)
        return {
            "products": products,
            "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
        }

    def upsert(self, payload: ProductUpsertIn) -> ProductModel:
        """
        Use Case: Zapis produktu z panelu admina.
        Mapowania zastepowane w calosci, tytul bazowy przeliczany z tytulu.
        """
        data = {
            "title": payload.title,
            "base_title": base_title(payload.title),
            "description": payload.description,
            "images": payload.images,
            "category": payload.category,
            "tags": payload.tags,
            "is_active": payload.is_active,
            "seo_title": payload.seo_title or f"{payload.title} - Buy Online",
            "seo_description": payload.seo_description or payload.description[:160],
        }
        mappings = [
            ProviderMappingModel(
                provider=m.provider,
                provider_product_id=m.provider_product_id,
                provider_variant_id=m.provider_variant_id,
                price=to_money(m.price),
                cost=to_money(m.cost if m.cost is not None else m.price * DEFAULT_COST_RATIO),
                is_active=m.is_active,
            )
            for m in payload.provider_mappings
        ]

        try:
            if payload.id:
                existing = self.repo.get_product(payload.id)
                if not existing:
                    raise NotFoundError("Product not found")
                rowcount = self.repo.update_product_version(
                    product_id=existing.id,
                    old_version=existing.version,
                    new_data={**data, "version": existing.version + 1},
                )
                if rowcount == 0:
                    raise ConcurrencyConflict(f"Product {existing.id} was modified concurrently")
                self.repo.replace_provider_mappings(existing.id, mappings)
                product_id = existing.id
            else:
                product_id = self.repo.create_product(ProductModel(**data, provider_mappings=mappings)).id
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Product {product_id} saved from admin panel")
        product = self.repo.get_product(product_id)
        self.repo.expire(product)
        return self.repo.get_product(product_id)
