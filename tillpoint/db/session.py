import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from pydantic_settings import BaseSettings, SettingsConfigDict

from tillpoint.db.models import Base
from tillpoint.errors import LockUnavailable, StoreUnavailable

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    DATABASE_URL: str = "sqlite:///./tillpoint.db"
    BACKUP_DIR: str = "backups"
    REPORT_DIR: str = "tmp/reports"
    LOG_LEVEL: str = "INFO"
    SALES_HISTORY_LIMIT: int = 30
    LOCK_TIMEOUT: float = 10.0


settings = Settings()


def make_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every checkout gets an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


class Till:
    """
    The single shared store of one till.

    All reads and writes go through ``transaction()``, which holds one
    process-wide lock for the whole unit of work: operations run strictly
    one at a time and never observe each other's intermediate state.
    """

    def __init__(self, engine: Engine, lock_timeout: float = settings.LOCK_TIMEOUT):
        self.engine = engine
        self.lock_timeout = lock_timeout
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )
        self._lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Lock the till, open a session and commit on normal exit.

        Any exception rolls the session back before it propagates. Store
        errors surface as StoreUnavailable and a lock wait longer than
        ``lock_timeout`` as LockUnavailable; nothing is retried.
        """
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise LockUnavailable(f"Till lock not acquired within {self.lock_timeout}s")
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.debug("transaction rolled back", exc_info=True)
            raise StoreUnavailable(f"Store error: {e}") from e
        except Exception:
            db.rollback()
            logger.debug("transaction rolled back", exc_info=True)
            raise
        finally:
            db.close()
            self._lock.release()

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)


engine = make_engine(settings.DATABASE_URL)
till = Till(engine)


def get_till() -> Till:
    return till
