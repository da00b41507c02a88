import pytest
from sqlalchemy import select, func

from podshop.data.models.product import ProductModel, ProviderMappingModel
from podshop.providers.base import ProviderType
from podshop.providers.printrove import PrintroveAdapter
from podshop.providers.registry import ProviderRegistry
from podshop.services.catalog_sync_service import CatalogSyncService, SyncState
from podshop.services.lock_service import catalog_lock_key
from podshop.utils.errors import ConcurrencyConflict, ProviderUnavailable


class BrokenAdapter(PrintroveAdapter):
    def list_products(self):
        raise ProviderUnavailable("Printrove is unavailable")


def count(db, model):
    return db.execute(select(func.count(model.id))).scalar_one()


def test_sync_creates_product_with_mapping(db, registry, lock_service):
    result = CatalogSyncService(db, registry, lock_service).sync_provider(ProviderType.PRINTFUL)

    assert result.state == SyncState.DONE
    assert result.fetched == 1
    assert len(result.created) == 1
    product = db.get(ProductModel, result.created[0])
    assert product.title == "International Hoodie (International)"
    assert product.base_title == "International Hoodie"
    assert product.seo_title == "International Hoodie (International) - Buy Online"
    assert [(m.provider, m.provider_product_id) for m in product.provider_mappings] == [("PRINTFUL", "printful-001")]


def test_resync_does_not_duplicate(db, registry, lock_service):
    svc = CatalogSyncService(db, registry, lock_service)
    svc.sync_provider("PRINTFUL")
    result = svc.sync_provider("PRINTFUL")

    assert result.created == []
    assert len(result.updated) == 1
    assert count(db, ProductModel) == 1
    assert count(db, ProviderMappingModel) == 1
    db.expire_all()
    assert db.get(ProductModel, result.updated[0]).version == 2


def test_sync_merges_products_across_providers(db, registry, lock_service):
    svc = CatalogSyncService(db, registry, lock_service)
    svc.sync_provider(ProviderType.PRINTROVE)
    svc.sync_provider(ProviderType.PRINTIFY)
    db.expire_all()

    mugs = db.execute(select(ProductModel).where(ProductModel.base_title == "Custom Mug")).scalars().all()
    assert len(mugs) == 1
    mug = mugs[0]
    assert mug.title == "Custom Mug"
    assert sorted(m.provider for m in mug.provider_mappings) == ["PRINTIFY", "PRINTROVE"]
    # T-Shirt, Mug, International Mug
    assert count(db, ProductModel) == 3


def test_resync_of_one_provider_keeps_other_mappings(db, registry, lock_service):
    svc = CatalogSyncService(db, registry, lock_service)
    svc.sync_provider(ProviderType.PRINTROVE)
    svc.sync_provider(ProviderType.PRINTIFY)
    svc.sync_provider(ProviderType.PRINTROVE)
    db.expire_all()

    mug = db.execute(select(ProductModel).where(ProductModel.base_title == "Custom Mug")).scalar_one()
    assert mug.title == "Custom Mug"
    assert sorted(m.provider for m in mug.provider_mappings) == ["PRINTIFY", "PRINTROVE"]


def test_sync_releases_locks(db, registry, lock_service):
    CatalogSyncService(db, registry, lock_service).sync_provider(ProviderType.PRINTROVE)

    assert catalog_lock_key("Custom Mug") in lock_service.acquired
    assert lock_service.held == {}


def test_held_lock_raises_conflict(db, registry, lock_service):
    lock_service.held[catalog_lock_key("International Hoodie")] = "other-worker"

    with pytest.raises(ConcurrencyConflict):
        CatalogSyncService(db, registry, lock_service).sync_provider(ProviderType.PRINTFUL)
    assert count(db, ProductModel) == 0


def test_fetch_failure_aborts_sync(db, lock_service):
    registry = ProviderRegistry({ProviderType.PRINTROVE: BrokenAdapter()})

    with pytest.raises(ProviderUnavailable):
        CatalogSyncService(db, registry, lock_service).sync_provider(ProviderType.PRINTROVE)
    assert count(db, ProductModel) == 0
