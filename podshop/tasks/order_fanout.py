# podshop/tasks/order_fanout.py
from dataclasses import asdict

from podshop.celery_worker import celery_app
from podshop.context import get_worker_context
from podshop.providers.registry import build_registry
from podshop.services.analytics_service import AnalyticsService
from podshop.services.credential_service import CredentialService
from podshop.services.order_fanout_service import OrderFanOutService
from podshop.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="podshop.tasks.order_fanout.process_order_task")
def process_order_task(order_id: int):
    logger.info(f"Process order task started for order {order_id}")

    ctx = get_worker_context()
    with ctx.session() as db:
        registry = build_registry(CredentialService(db, ctx.cipher).provider_credentials())
        service = OrderFanOutService(db, registry, lock_service=ctx.lock_service, analytics=AnalyticsService())
        try:
            results = service.process_order(order_id)
        except Exception as e:
            logger.error(f"Process order task failed for order {order_id}: {e}")
            raise

    logger.info(f"Process order task finished for order {order_id}: {len(results)} sub-orders")
    return [asdict(r) for r in results]
