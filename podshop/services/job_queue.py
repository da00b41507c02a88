# podshop/services/job_queue.py
from podshop.providers.base import ProviderType
from podshop.utils.logging import get_logger

logger = get_logger(__name__)


class CeleryJobQueue:
    """Jedyne miejsce gdzie request handler wrzuca prace do kolejki."""

    def enqueue_order_fanout(self, order_id: int):
        from podshop.tasks.order_fanout import process_order_task

        logger.info(f"Enqueue fan-out for order {order_id}")
        process_order_task.delay(order_id)

    def enqueue_catalog_sync(self, provider: ProviderType):
        from podshop.tasks.catalog_sync import sync_catalog_task

        logger.info(f"Enqueue catalog sync for {provider.value}")
        sync_catalog_task.delay(provider.value)
