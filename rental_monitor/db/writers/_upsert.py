"""
Upsert helper with IS DISTINCT FROM optimization that still returns the row id.

ON CONFLICT DO UPDATE ... WHERE skips the update when nothing changed, and in
that case RETURNING yields no row. The helper then looks the id up by the
conflict column so callers always get the canonical id back.
"""

from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.engine import Connection


def upsert_returning_id(
    conn: Connection,
    table: type,
    row: dict[str, Any],
    conflict_column: str,
    update_columns: list[str],
    id_column: str = "id",
) -> Any:
    """
    Insert or update one row keyed on a unique column and return its id.

    Only updates the row when at least one of update_columns differs from the
    stored value, so updated_at does not move on identical re-sightings.

    Args:
        conn: Active database connection (within transaction)
        table: SQLAlchemy ORM table class (e.g., Listing)
        row: Column values for the row
        conflict_column: Unique column for ON CONFLICT (e.g., "external_id")
        update_columns: Columns overwritten on conflict; "updated_at" is always added
        id_column: Primary key column to return

    Returns:
        The primary key of the inserted or existing row.

    Example:
        >>> with engine.begin() as conn:
        ...     listing_id = upsert_returning_id(
        ...         conn=conn,
        ...         table=Listing,
        ...         row={"external_id": 1234, "price": "£2,000 pcm", ...},
        ...         conflict_column="external_id",
        ...         update_columns=["price", "images"],
        ...     )
    """
    stmt = insert(table).values(row)

    set_dict = {col: getattr(stmt.excluded, col) for col in update_columns}
    set_dict["updated_at"] = stmt.excluded.updated_at

    distinct_check = or_(
        *[
            getattr(table, col).is_distinct_from(getattr(stmt.excluded, col))
            for col in update_columns
        ]
    )

    stmt = stmt.on_conflict_do_update(
        index_elements=[conflict_column],
        set_=set_dict,
        where=distinct_check,
    ).returning(getattr(table, id_column))

    row_id = conn.execute(stmt).scalar_one_or_none()
    if row_id is not None:
        return row_id

    # Conflict with no changes: the existing row was left untouched
    return conn.execute(
        select(getattr(table, id_column)).where(
            getattr(table, conflict_column) == row[conflict_column]
        )
    ).scalar_one()
