import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from flashbot.core.config import settings
from flashbot.core.errors import StoreFailure

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # in-memory база живёт в одном соединении
    if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(session_factory=SessionLocal):
    """
    Одна ORM-сессия на вызов хранилища.
    Любая ошибка SQLAlchemy превращается в StoreFailure.
    """
    db: Session = session_factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store operation failed: %s", exc)
        raise StoreFailure(str(exc)) from exc
    finally:
        db.close()


def init_db() -> None:
    import flashbot.models  # noqa: F401  регистрирует таблицы в metadata
    from flashbot.db.base import Base

    Base.metadata.create_all(bind=engine)
