"""Store handle: one engine, one bounded connection pool, one way to open a
transaction.

Components get a ``Store`` at construction time and open a
``session_scope()`` per operation. The scope commits on success and rolls
back on any failure, so multi-statement writes (numbering, category
cascades) are all-or-nothing.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from errors import InventoryError, ResourceExhausted, StoreError
from models import INVENTORY_COUNTER, Base, InventoryCounter

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url):
    return url == "sqlite://" or url.startswith("sqlite:///:memory:")


def engine_options(settings):
    url = settings["DB_URL"]
    if _is_memory_sqlite(url):
        # one shared connection: concurrent requests would share one transaction,
        # so in-memory databases are only for sequential tests
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    if url.startswith("sqlite"):
        return {
            "pool_size": settings["DB_POOL_SIZE"],
            "max_overflow": settings["DB_MAX_OVERFLOW"],
            "pool_timeout": settings["DB_POOL_TIMEOUT"],
            "connect_args": {
                "check_same_thread": False,
                "timeout": settings["SQLITE_BUSY_TIMEOUT"],
            },
        }
    return {
        "pool_size": settings["DB_POOL_SIZE"],
        "max_overflow": settings["DB_MAX_OVERFLOW"],
        "pool_timeout": settings["DB_POOL_TIMEOUT"],
        "pool_pre_ping": True,
    }


class Store:
    def __init__(self, engine):
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings):
        engine = create_engine(settings["DB_URL"], **engine_options(settings))
        return cls(engine)

    def create_schema(self):
        """Create missing tables and seed the numbering counter row."""
        Base.metadata.create_all(bind=self.engine)
        with self.session_scope() as session:
            counter = session.get(InventoryCounter, INVENTORY_COUNTER)
            if counter is None:
                session.add(InventoryCounter(name=INVENTORY_COUNTER, last_no=0))
        logger.info("Database tables initialized")

    @contextmanager
    def session_scope(self):
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except InventoryError:
            session.rollback()
            raise
        except PoolTimeoutError as exc:
            session.rollback()
            logger.error("Connection pool exhausted: %s", exc)
            raise ResourceExhausted() from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Store operation failed")
            raise StoreError(detail=_root_message(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self):
        self.engine.dispose()


def _root_message(exc):
    root = getattr(exc, "orig", None) or exc
    return str(root).splitlines()[0] if str(root) else exc.__class__.__name__
