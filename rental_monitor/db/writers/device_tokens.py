import structlog
from sqlalchemy import delete
from sqlalchemy.engine import Connection

from rental_monitor.models.device_tokens import DeviceToken

logger = structlog.get_logger(__name__)


def delete_device_token(conn: Connection, device_token: str) -> int:
    """
    Delete every registration of a device token.

    The same token can be registered for several users when an installation
    was signed into different accounts; once APNs rejects it, none of those
    registrations can ever succeed.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        device_token (str): APNs device token.

    Returns:
        int: Number of rows removed.
    """
    result = conn.execute(delete(DeviceToken).where(DeviceToken.device_token == device_token))
    removed = result.rowcount or 0

    logger.info("device_token_deleted", token_suffix=device_token[-8:], rows=removed)
    return removed
