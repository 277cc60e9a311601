from functools import wraps
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)


def make_engine(url: str, echo: bool = False):
    """Build an engine for ``url``.

    SQLite needs ``check_same_thread=False`` because requests are served from
    a thread pool; other databases get a pre-pinged connection pool.
    """
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=1800,
    )


def create_tables(engine) -> None:
    SQLModel.metadata.create_all(engine)


def storage_guard(func):
    """Convert storage faults raised inside ``func`` into ``StorageUnavailable``.

    Domain errors pass through untouched. Sessions opened inside ``func`` are
    expected to be context managers, so by the time the error reaches here
    they have already been rolled back and closed.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(
                "storage_error",
                extra={"error": str(e), "event": func.__name__},
                exc_info=True,
            )
            raise StorageUnavailable(f"Storage unavailable during {func.__name__}") from e

    return wrapper
