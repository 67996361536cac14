from typing import Iterable

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection

from rental_monitor.config import SCHEMA


def is_listing_linked(conn: Connection, query_id: str, external_id: int) -> bool:
    """
    Check whether a listing is already linked to a saved query.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        query_id (str): Saved query UUID.
        external_id (int): Upstream listing id.

    Returns:
        bool: True if a link exists for the pair, False otherwise.
    """
    result = conn.execute(
        text(
            f"""
            SELECT 1
            FROM {SCHEMA}.query_listings ql
            JOIN {SCHEMA}.listings l ON l.id = ql.listing_id
            WHERE ql.query_id = CAST(:query_id AS uuid) AND l.external_id = :external_id
            """
        ),
        {"query_id": query_id, "external_id": external_id},
    )
    return result.fetchone() is not None


def get_linked_external_ids(
    conn: Connection, query_id: str, external_ids: Iterable[int]
) -> set[int]:
    """
    Return the subset of external ids already linked to a saved query.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        query_id (str): Saved query UUID.
        external_ids (Iterable[int]): Candidate upstream listing ids.

    Returns:
        set[int]: Candidate ids that have a link row for this query.
    """
    ids = list(external_ids)
    if not ids:
        return set()

    stmt = text(
        f"""
        SELECT l.external_id
        FROM {SCHEMA}.query_listings ql
        JOIN {SCHEMA}.listings l ON l.id = ql.listing_id
        WHERE ql.query_id = CAST(:query_id AS uuid) AND l.external_id IN :external_ids
        """
    ).bindparams(bindparam("external_ids", expanding=True))

    result = conn.execute(stmt, {"query_id": query_id, "external_ids": ids})
    return {int(row[0]) for row in result.fetchall()}
