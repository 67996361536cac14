"""
SQLAlchemy engine factory.

The engine is built once per run by the job entry point and passed to the
persistence gateway. It is shared by the concurrent user tasks, so the pool is
sized for a handful of worker threads.
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from rental_monitor.config import DATABASE_URL


def create_db_engine(url: str | None = None) -> Engine:
    """
    Create the engine used for one monitor run.

    Args:
        url: SQLAlchemy URL; defaults to DATABASE_URL from the environment.

    Returns:
        Engine: Pooled engine safe to share across threads.

    Raises:
        RuntimeError: If no database URL is configured.
    """
    database_url = url or DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL must be set in the environment")

    return create_engine(
        database_url,
        future=True,
        pool_size=5,
        max_overflow=5,
        pool_pre_ping=True,  # Detect connections dropped between scheduled runs
        pool_recycle=3600,
        echo=False,
    )


def check_engine_health(engine: Engine) -> bool:
    """
    Check if the database is reachable.

    Returns:
        bool: True if a trivial query succeeds, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
