"""
Shared fixtures for database integration tests.

Requires a PostgreSQL DATABASE_URL; tests are skipped without one.
"""

from __future__ import annotations

import uuid
from typing import Generator

import pytest
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.schema import CreateSchema

from rental_monitor.config import DATABASE_URL, SCHEMA
from rental_monitor.db.engine import create_db_engine
from rental_monitor.db.gateway import PersistenceGateway
from rental_monitor.models.base import Base
from rental_monitor.models.device_tokens import DeviceToken  # noqa: F401
from rental_monitor.models.listings import Listing  # noqa: F401
from rental_monitor.models.queries import SavedQuery  # noqa: F401
from rental_monitor.models.query_listings import QueryListing  # noqa: F401

# External ids reserved for test rows
TEST_EXTERNAL_ID_BASE = 990_000_000


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    if not DATABASE_URL:
        pytest.skip("DATABASE_URL not set")

    engine = create_db_engine()
    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS pgcrypto"))
        conn.execute(CreateSchema(SCHEMA, if_not_exists=True))
    Base.metadata.create_all(engine)

    yield engine
    engine.dispose()


@pytest.fixture
def gateway(engine: Engine) -> PersistenceGateway:
    return PersistenceGateway(engine)


@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def saved_query_ids(engine: Engine, user_id: str) -> Generator[list[str], None, None]:
    """
    Insert two active saved queries for one user.

    Cleans up queries, their links and test listings afterwards.
    """
    query_ids = [str(uuid.uuid4()), str(uuid.uuid4())]
    with engine.begin() as conn:
        for n, query_id in enumerate(query_ids):
            conn.execute(
                text(
                    f"""
                    INSERT INTO {SCHEMA}.saved_queries
                        (id, user_id, name, location_identifier, max_price, active)
                    VALUES (:id, :user_id, :name, 'REGION^87490', 2500, TRUE)
                    """
                ),
                {"id": query_id, "user_id": user_id, "name": f"Integration query {n}"},
            )

    yield query_ids

    with engine.begin() as conn:
        conn.execute(
            text(f"DELETE FROM {SCHEMA}.saved_queries WHERE user_id = CAST(:user_id AS uuid)"),
            {"user_id": user_id},
        )
        conn.execute(
            text(f"DELETE FROM {SCHEMA}.listings WHERE external_id >= :base"),
            {"base": TEST_EXTERNAL_ID_BASE},
        )
        conn.execute(
            text(f"DELETE FROM {SCHEMA}.device_tokens WHERE user_id = CAST(:user_id AS uuid)"),
            {"user_id": user_id},
        )
