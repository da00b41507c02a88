# podshop/context.py
from contextlib import contextmanager
from dataclasses import dataclass

from celery.signals import worker_process_init, worker_process_shutdown
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from podshop.data.database import create_db_engine, make_session_factory
from podshop.services.job_queue import CeleryJobQueue
from podshop.services.lock_service import LockService
from podshop.services.payment_service import RazorpayGateway
from podshop.utils.crypto import SettingsCipher
from podshop.utils.logging import get_logger
from podshop.utils.settings import ENCRYPTION_KEY

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Zasoby procesu (API albo worker): baza, redis, kolejka, bramka platnosci."""

    engine: Engine
    session_factory: sessionmaker
    lock_service: LockService
    job_queue: CeleryJobQueue
    payment_gateway: RazorpayGateway
    cipher: SettingsCipher

    @contextmanager
    def session(self) -> Session:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def close(self):
        self.lock_service.close()
        self.engine.dispose()


def build_context(database_url: str | None = None) -> AppContext:
    engine = create_db_engine(database_url)
    return AppContext(
        engine=engine,
        session_factory=make_session_factory(engine),
        lock_service=LockService(),
        job_queue=CeleryJobQueue(),
        payment_gateway=RazorpayGateway(),
        cipher=SettingsCipher(ENCRYPTION_KEY),
    )


_worker_context: AppContext | None = None


@worker_process_init.connect
def _init_worker(**kwargs):
    # kazdy proces workera (prefork) ma wlasny engine i klienta redis
    global _worker_context
    _worker_context = build_context()
    logger.info("Worker context initialised")


@worker_process_shutdown.connect
def _shutdown_worker(**kwargs):
    global _worker_context
    if _worker_context is not None:
        _worker_context.close()
        _worker_context = None


def get_worker_context() -> AppContext:
    global _worker_context
    if _worker_context is None:
        # worker bez preforka (solo / eager) nie wysyla worker_process_init
        _worker_context = build_context()
    return _worker_context
