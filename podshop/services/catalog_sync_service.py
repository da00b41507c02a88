# podshop/services/catalog_sync_service.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy.orm import Session
from tenacity import retry, stop_after_attempt, wait_fixed, retry_if_result

from podshop.data.models.product import ProductModel, ProviderMappingModel
from podshop.providers.base import ProviderType
from podshop.providers.normalizer import NormalizedProduct, merge
from podshop.providers.registry import ProviderRegistry
from podshop.repos.product_repo import ProductRepo
from podshop.services.lock_service import catalog_lock_key
from podshop.utils.errors import ConcurrencyConflict
from podshop.utils.logging import get_logger
from podshop.utils.settings import CATALOG_LOCK_TTL_SECONDS

logger = get_logger(__name__)


class SyncState(str, Enum):
    FETCHING = "FETCHING"
    NORMALIZING = "NORMALIZING"
    RECONCILING = "RECONCILING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class SyncResult:
    provider: str
    state: SyncState = SyncState.FETCHING
    fetched: int = 0
    created: list[int] = field(default_factory=list)
    updated: list[int] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "provider": self.provider,
            "state": self.state.value,
            "fetched": self.fetched,
            "created": len(self.created),
            "updated": len(self.updated),
        }


def _seo_fields(product: NormalizedProduct) -> dict:
    return {
        "seo_title": f"{product.title} - Buy Online",
        "seo_description": product.description[:160],
    }


def _mapping_models(product: NormalizedProduct) -> list[ProviderMappingModel]:
    return [
        ProviderMappingModel(
            provider=m.provider.value,
            provider_product_id=m.provider_product_id,
            provider_variant_id=m.provider_variant_id,
            price=m.price,
            cost=m.cost,
            is_active=m.is_active,
        )
        for m in product.provider_mappings
    ]


class CatalogSyncService:
    """
    Use Case: synchronizacja katalogu jednego providera.

    FETCHING -> NORMALIZING -> RECONCILING -> DONE | FAILED

    Blad pobrania katalogu przerywa caly sync (bez retry pojedynczych
    produktow), wyjatek idzie wyzej do kolejki / schedulera.
    Reconcyliacja produktu trzymana pod lockiem per tytul bazowy, zapis
    produktu z warunkiem na version (optimistic locking).
    """

    def __init__(self, db: Session, registry: ProviderRegistry, lock_service, lock_ttl: int | None = None):
        self.repo = ProductRepo(db)
        self.registry = registry
        self.lock_service = lock_service
        self.lock_ttl = lock_ttl or CATALOG_LOCK_TTL_SECONDS
        self.owner = f"catalog-sync:{uuid4().hex}"

    def sync_provider(self, provider: ProviderType | str) -> SyncResult:
        provider = ProviderType.parse(provider)
        adapter = self.registry.get(provider)
        result = SyncResult(provider=provider.value)

        logger.info(f"Starting catalog sync for {provider.value}")
        try:
            raw_products = adapter.list_products()
            result.fetched = len(raw_products)
            logger.info(f"Fetched {result.fetched} products from {provider.value}")

            result.state = SyncState.NORMALIZING
            normalized = merge((raw, provider) for raw in raw_products)

            result.state = SyncState.RECONCILING
            for product in normalized:
                product_id, created = self._reconcile(provider, product)
                (result.created if created else result.updated).append(product_id)

        except Exception as e:
            failed_in = result.state
            result.state = SyncState.FAILED
            logger.error(f"Catalog sync failed for {provider.value} while {failed_in.value}: {e}")
            raise

        result.state = SyncState.DONE
        logger.info(
            f"Catalog sync completed for {provider.value}: "
            f"{len(result.created)} created, {len(result.updated)} updated"
        )
        return result

    def _reconcile(self, provider: ProviderType, product: NormalizedProduct) -> tuple[int, bool]:
        key = catalog_lock_key(product.base_title)
        if not self._acquire(key):
            raise ConcurrencyConflict(f"Product '{product.base_title}' is being synced by another worker")

        try:
            existing = (
                self.repo.find_by_title(product.title)
                or self.repo.find_by_base_title(product.base_title)
                or self.repo.find_by_provider_product(provider.value, product.provider_product_ids)
            )

            if existing:
                self._update(existing, provider, product)
                product_id, created = existing.id, False
            else:
                product_id, created = self._create(product), True

            self.repo.commit()
            return product_id, created
        except Exception:
            self.repo.rollback()
            raise
        finally:
            self.lock_service.release(key, self.owner)

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_fixed(0.2),
        retry=retry_if_result(lambda acquired: not acquired),
        retry_error_callback=lambda state: False,
    )
    def _acquire(self, key: str) -> bool:
        return self.lock_service.acquire(key, self.owner, self.lock_ttl)

    def _update(self, existing: ProductModel, provider: ProviderType, product: NormalizedProduct):
        # mapowania innych providerow zostaja, wtedy produkt jest scalony i ma tytul bazowy
        shared = any(m.provider != provider.value for m in existing.provider_mappings)
        title = product.base_title if shared else product.title

        rowcount = self.repo.update_product_version(
            product_id=existing.id,
            old_version=existing.version,
            new_data={
                "title": title,
                "base_title": product.base_title,
                "description": product.description,
                "images": product.images,
                "category": product.category,
                "tags": product.tags,
                "version": existing.version + 1,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        if rowcount == 0:
            raise ConcurrencyConflict(f"Product {existing.id} was modified during catalog sync")

        # delete + create tylko dla tego providera
        self.repo.replace_provider_mappings(existing.id, _mapping_models(product), provider=provider.value)
        self.repo.expire(existing)
        logger.info(f"Updated product {existing.id} '{title}' from {provider.value}")

    def _create(self, product: NormalizedProduct) -> int:
        created = self.repo.create_product(
            ProductModel(
                title=product.title,
                base_title=product.base_title,
                description=product.description,
                images=product.images,
                category=product.category,
                tags=product.tags,
                provider_mappings=_mapping_models(product),
                **_seo_fields(product),
            )
        )
        logger.info(f"Created product {created.id} '{product.title}'")
        return created.id
