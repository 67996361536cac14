from sqlalchemy import text
from sqlalchemy.engine import Connection

from rental_monitor.config import SCHEMA
from rental_monitor.schemas.device_tokens import DeviceToken


def get_device_tokens(conn: Connection, user_id: str, device_type: str = "ios") -> list[DeviceToken]:
    """
    Fetch a user's registered device tokens for one platform.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        user_id (str): Owning user UUID.
        device_type (str): Platform tag, "ios" for APNs.

    Returns:
        list[DeviceToken]: Registered tokens, oldest registration first.
    """
    result = conn.execute(
        text(
            f"""
            SELECT user_id, device_token, device_type
            FROM {SCHEMA}.device_tokens
            WHERE user_id = CAST(:user_id AS uuid) AND device_type = :device_type
            ORDER BY created_at
            """
        ),
        {"user_id": user_id, "device_type": device_type},
    )
    return [
        DeviceToken(
            user_id=str(row["user_id"]),
            device_token=row["device_token"],
            device_type=row["device_type"],
        )
        for row in result.mappings().all()
    ]
