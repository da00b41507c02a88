# podshop/repos/product_repo.py
import json

from sqlalchemy import select, update, delete, func, or_, and_, cast, String
from sqlalchemy.orm import Session, selectinload

from podshop.data.models.product import ProductModel, ProviderMappingModel, ProductLikeModel


def _has_active_mapping():
    return ProductModel.provider_mappings.any(ProviderMappingModel.is_active.is_(True))


def _has_any_tag(tags: list[str]):
    # tags to kolumna JSON, szukamy '"tag"' w jej tekscie (dziala na sqlite i postgres)
    return or_(*[cast(ProductModel.tags, String).like(f"%{json.dumps(tag)}%") for tag in tags])


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def _with_relations(self, query):
        return query.options(
            selectinload(ProductModel.provider_mappings),
            selectinload(ProductModel.likes),
        )

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.execute(
            self._with_relations(select(ProductModel).where(ProductModel.id == product_id))
        ).scalar_one_or_none()

    def get_public_product(self, product_id: int) -> ProductModel | None:
        return self.db.execute(
            self._with_relations(
                select(ProductModel).where(
                    ProductModel.id == product_id,
                    ProductModel.is_active.is_(True),
                    _has_active_mapping(),
                )
            )
        ).scalar_one_or_none()

    def get_public_products(self, product_ids) -> list[ProductModel]:
        ids = list(set(product_ids))
        if not ids:
            return []
        return list(
            self.db.execute(
                self._with_relations(
                    select(ProductModel).where(
                        ProductModel.id.in_(ids),
                        ProductModel.is_active.is_(True),
                        _has_active_mapping(),
                    )
                )
            ).scalars().all()
        )

    def list_public_products(
        self,
        page: int,
        limit: int,
        category: str | None = None,
        search: str | None = None,
        tags: list[str] | None = None,
    ) -> tuple[list[ProductModel], int]:
        conditions = [ProductModel.is_active.is_(True), _has_active_mapping()]
        if category:
            conditions.append(ProductModel.category == category)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(
                    func.lower(ProductModel.title).like(pattern),
                    func.lower(ProductModel.description).like(pattern),
                )
            )
        if tags:
            conditions.append(_has_any_tag(tags))

        return self._page(and_(*conditions), page, limit)

    def list_all_products(self, page: int, limit: int) -> tuple[list[ProductModel], int]:
        return self._page(None, page, limit)

    def _page(self, where, page: int, limit: int):
        query = select(ProductModel)
        count = select(func.count(ProductModel.id))
        if where is not None:
            query = query.where(where)
            count = count.where(where)

        products = self.db.execute(
            self._with_relations(query)
            .order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(products), self.db.execute(count).scalar_one()

    def list_related(self, product: ProductModel, limit: int = 8) -> list[ProductModel]:
        similar = [ProductModel.category == product.category]
        if product.tags:
            similar.append(_has_any_tag(product.tags))

        return list(
            self.db.execute(
                self._with_relations(
                    select(ProductModel).where(
                        ProductModel.id != product.id,
                        ProductModel.is_active.is_(True),
                        _has_active_mapping(),
                        or_(*similar),
                    )
                )
                .order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
                .limit(limit)
            ).scalars().all()
        )

    def list_categories(self) -> list[str]:
        return list(
            self.db.execute(
                select(ProductModel.category)
                .where(ProductModel.is_active.is_(True))
                .distinct()
                .order_by(ProductModel.category)
            ).scalars().all()
        )

    def count_active(self) -> int:
        return self.db.execute(
            select(func.count(ProductModel.id)).where(ProductModel.is_active.is_(True))
        ).scalar_one()

    # reconcyliacja katalogu
    def find_by_title(self, title: str) -> ProductModel | None:
        return self.db.execute(
            self._with_relations(
                select(ProductModel).where(ProductModel.title == title).order_by(ProductModel.id)
            )
        ).scalars().first()

    def find_by_base_title(self, base_title: str) -> ProductModel | None:
        return self.db.execute(
            self._with_relations(
                select(ProductModel).where(ProductModel.base_title == base_title).order_by(ProductModel.id)
            )
        ).scalars().first()

    def find_by_provider_product(self, provider: str, provider_product_ids) -> ProductModel | None:
        return self.db.execute(
            self._with_relations(
                select(ProductModel)
                .join(ProviderMappingModel)
                .where(
                    ProviderMappingModel.provider == provider,
                    ProviderMappingModel.provider_product_id.in_(list(provider_product_ids)),
                )
                .order_by(ProductModel.id)
            )
        ).scalars().first()

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def update_product_version(self, product_id: int, old_version: int, new_data: dict) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def replace_provider_mappings(
        self,
        product_id: int,
        mappings: list[ProviderMappingModel],
        provider: str | None = None,
    ):
        # provider=None -> wszystkie mapowania (zapis z panelu admina)
        stmt = delete(ProviderMappingModel).where(ProviderMappingModel.product_id == product_id)
        if provider is not None:
            stmt = stmt.where(ProviderMappingModel.provider == provider)
        self.db.execute(stmt.execution_options(synchronize_session=False))

        for mapping in mappings:
            mapping.product_id = product_id
        self.db.add_all(mappings)

    # polubienia
    def get_like(self, user_id: int, product_id: int) -> ProductLikeModel | None:
        return self.db.execute(
            select(ProductLikeModel).where(
                ProductLikeModel.user_id == user_id,
                ProductLikeModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def add_like(self, like: ProductLikeModel):
        self.db.add(like)
        self.db.commit()

    def delete_like(self, like: ProductLikeModel):
        self.db.delete(like)
        self.db.commit()

    def expire(self, product: ProductModel):
        self.db.expire(product)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
