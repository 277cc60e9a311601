from .config import DATABASE_URL
from .database import create_tables, make_engine
from .logging_utils import get_logger, setup_logging
from .migrations import run_migrations

logger = get_logger("gridgame.init_db")


def init_db(url: str = DATABASE_URL):
    engine = make_engine(url)
    create_tables(engine)
    run_migrations(engine)
    logger.info("db_initialized", extra={"url": url})
    return engine


if __name__ == '__main__':
    setup_logging()
    init_db()
