from typing import Any, Optional, get_args

import structlog
from sqlalchemy import text
from sqlalchemy.engine import Connection

from rental_monitor.config import SCHEMA
from rental_monitor.schemas.queries import FurnishType, SavedQuery

logger = structlog.get_logger(__name__)

FURNISH_TYPES = set(get_args(FurnishType))

_QUERY_COLUMNS = """
    id, user_id, name, location_identifier, latitude, longitude,
    min_price, max_price, min_bedrooms, max_bedrooms,
    min_bathrooms, max_bathrooms, furnish_type, radius,
    active, created_at, updated_at
"""


def _row_to_query(row: Any) -> SavedQuery:
    data = dict(row)
    data["id"] = str(data["id"])
    data["user_id"] = str(data["user_id"]) if data.get("user_id") else None
    for col in ("latitude", "longitude", "radius"):
        if data.get(col) is not None:
            data[col] = float(data[col])

    # Written by the client app as free text; anything unknown means no filter
    furnish_type = data.get("furnish_type")
    if furnish_type is not None and furnish_type not in FURNISH_TYPES:
        logger.warning("unknown_furnish_type_ignored", query_id=data["id"], furnish_type=furnish_type)
        data["furnish_type"] = None

    return SavedQuery(**data)


def get_active_queries(conn: Connection, user_id: Optional[str] = None) -> list[SavedQuery]:
    """
    Fetch every active saved query, newest first.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        user_id (Optional[str]): Restrict to one user's queries when given.

    Returns:
        list[SavedQuery]: Active queries mapped to schemas.
    """
    sql = f"SELECT {_QUERY_COLUMNS} FROM {SCHEMA}.saved_queries WHERE active = TRUE"
    params: dict[str, Any] = {}
    if user_id is not None:
        sql += " AND user_id = CAST(:user_id AS uuid)"
        params["user_id"] = user_id
    sql += " ORDER BY created_at DESC"

    result = conn.execute(text(sql), params)
    return [_row_to_query(row) for row in result.mappings().all()]
