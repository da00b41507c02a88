# podshop/tasks/catalog_sync.py
from podshop.celery_worker import celery_app
from podshop.context import get_worker_context
from podshop.providers.base import ProviderType
from podshop.providers.registry import build_registry
from podshop.services.catalog_sync_service import CatalogSyncService
from podshop.services.credential_service import CredentialService
from podshop.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="podshop.tasks.catalog_sync.sync_catalog_task")
def sync_catalog_task(provider: str):
    ctx = get_worker_context()
    with ctx.session() as db:
        registry = build_registry(CredentialService(db, ctx.cipher).provider_credentials())
        result = CatalogSyncService(db, registry, ctx.lock_service).sync_provider(provider)
    return result.as_dict()


@celery_app.task(name="podshop.tasks.catalog_sync.sync_all_catalogs_task")
def sync_all_catalogs_task():
    # jeden job per provider, blad jednego nie blokuje reszty
    logger.info("Scheduling catalog sync for all providers")
    for provider in ProviderType:
        sync_catalog_task.delay(provider.value)
