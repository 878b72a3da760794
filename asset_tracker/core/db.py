import threading
from collections import defaultdict
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from asset_tracker.core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared with FastAPI's threadpool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

class Base(DeclarativeBase):
    pass


@contextmanager
def transaction(db: Session):
    """
    Commit everything written inside the block, or nothing.

    Workflow operations write a record and then update asset documents;
    both go through one of these blocks.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


_serial_lock = threading.RLock()


@contextmanager
def serial_lock():
    """
    Process-wide guard for serial assignment, held through commit.

    Taken after ``allocation_lock`` by every operation that may create an
    asset. The locked ``serial_counters`` row does the same across
    processes on PostgreSQL.
    """
    with _serial_lock:
        yield


_allocation_locks: dict[tuple[str, str], threading.Lock] = defaultdict(threading.Lock)
_allocation_locks_guard = threading.Lock()


@contextmanager
def allocation_lock(base_id, equipment_type_id):
    """
    Serialise select-and-reserve on one (base, equipment type) pool.

    Held around the whole read -> decide -> write -> commit sequence so two
    requests in this process can never reserve the same asset. Across
    processes the FOR UPDATE clause on the allocation query does the same
    job on PostgreSQL.
    """
    key = (str(base_id), str(equipment_type_id))
    with _allocation_locks_guard:
        lock = _allocation_locks[key]
    with lock:
        yield


# Ensure models are registered
from asset_tracker import models  # noqa: E402,F401
