# podshop/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from podshop.utils.settings import DATABASE_URL

Base = declarative_base()


def create_db_engine(url: str | None = None, **kwargs) -> Engine:
    url = url or DATABASE_URL
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    # import wszystkich modeli zeby byly w Base.metadata przed create_all
    import podshop.data.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
