"""
Per-user summary notifications.

A user gets at most one push per run, summarising every new listing found
across their saved queries. Delivery tries the primary APNs environment first
and falls back to the secondary one only for tokens the primary rejects as
BadDeviceToken.
"""

from dataclasses import dataclass, field
from typing import Optional

import jwt
import structlog

from rental_monitor.config import (
    APN_AUTH_KEY,
    APN_BUNDLE_ID,
    APN_KEY_ID,
    APN_PRODUCTION,
    APN_TEAM_ID,
)
from rental_monitor.db.gateway import PersistenceGateway
from rental_monitor.metrics import device_tokens_pruned, notifications_sent
from rental_monitor.network.apns import (
    APNsClient,
    DeliveryResult,
    DeliveryStatus,
    NotificationConfigError,
    build_payload,
)
from rental_monitor.network.auth import ProviderTokenSigner

logger = structlog.get_logger(__name__)

NOTIFICATION_TYPE = "new_properties"


def compose_title(new_count: int) -> str:
    if new_count == 1:
        return "Don't miss out!"
    if new_count <= 5:
        return "New properties found"
    return "Your property update"


def compose_body(new_count: int, query_count: int, query_name: Optional[str] = None) -> str:
    if new_count == 1 and query_count == 1:
        if query_name:
            return (
                f'A new property matching "{query_name}" was just listed. '
                "Be the first to enquire!"
            )
        return "A new property matching your search was just listed. Be the first to enquire!"

    if query_count > 1:
        return f"{new_count} new properties across {query_count} of your searches"

    if query_name:
        if new_count <= 3:
            return f'{new_count} new properties for "{query_name}"'
        return f'{new_count} new properties for "{query_name}" are waiting for you'

    return f"{new_count} new properties match your search"


def compose_message(
    new_count: int, query_count: int, query_name: Optional[str] = None
) -> tuple[str, str]:
    """
    Pick the notification title and body for a user's run total.

    Args:
        new_count: New listings linked for the user in this run
        query_count: Number of the user's queries that produced new listings
        query_name: Name of the only contributing query, if exactly one

    Returns:
        tuple[str, str]: (title, body)
    """
    return compose_title(new_count), compose_body(new_count, query_count, query_name)


@dataclass
class NotificationResult:
    success: bool
    delivered: int = 0
    removed: int = 0
    errors: list[str] = field(default_factory=list)


class NotificationDispatcher:
    """
    Deliver one summary notification to every iOS device of a user.

    Attributes:
        gateway: Persistence gateway for device token lookup and removal
        primary: APNs client tried first for every token
        secondary: APNs client for tokens the primary rejects as bad, if any
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        primary: APNsClient,
        secondary: Optional[APNsClient] = None,
    ):
        self.gateway = gateway
        self.primary = primary
        self.secondary = secondary

    def notify(
        self,
        user_id: str,
        new_count: int,
        query_count: int,
        query_name: Optional[str] = None,
    ) -> NotificationResult:
        """
        Send the run summary to all of a user's devices.

        Tokens rejected permanently, or rejected as bad in both environments,
        are deleted from the token store. Success means at least one device
        received the notification and every token marked for removal was
        removed.

        Args:
            user_id: Owner of the saved queries
            new_count: Total new listings across the user's queries
            query_count: Number of queries that contributed new listings
            query_name: Name of the single contributing query, if any

        Returns:
            NotificationResult: Outcome with per-token error strings
        """
        log = logger.bind(user_id=user_id, new_count=new_count, query_count=query_count)

        tokens = self.gateway.device_tokens_for_user(user_id)
        if not tokens:
            log.info("notification_skipped_no_devices")
            notifications_sent.labels(status="no_devices").inc()
            return NotificationResult(success=True)

        title, body = compose_message(new_count, query_count, query_name)
        data = {"type": NOTIFICATION_TYPE, "count": new_count, "queries": query_count}
        if query_name:
            data["queryName"] = query_name
        payload = build_payload(title, body, badge=new_count, data=data)

        result = NotificationResult(success=False)
        removal_failed = False

        for token in tokens:
            outcome = self._deliver(token.device_token, payload)

            if outcome.delivered:
                result.delivered += 1
                continue

            if outcome.status is DeliveryStatus.FAILED or (
                outcome.status is DeliveryStatus.BAD_TOKEN and self.secondary is None
            ):
                result.errors.append(
                    f"Delivery to device ...{token.device_token[-8:]} failed: {outcome.reason}"
                )
                continue

            removed = self.gateway.remove_device_token(token.device_token)
            if removed.ok:
                result.removed += 1
                device_tokens_pruned.inc()
                log.info(
                    "device_token_removed",
                    token_suffix=token.device_token[-8:],
                    reason=outcome.reason,
                )
            else:
                removal_failed = True
                result.errors.append(removed.error or "Failed to remove device token")

        result.success = result.delivered > 0 and not removal_failed
        notifications_sent.labels(status="delivered" if result.success else "failed").inc()
        log.info(
            "notification_dispatched",
            success=result.success,
            devices=len(tokens),
            delivered=result.delivered,
            removed=result.removed,
            errors=len(result.errors),
        )
        return result

    def shutdown(self) -> None:
        self.primary.shutdown()
        if self.secondary is not None:
            self.secondary.shutdown()

    def _deliver(self, device_token: str, payload: dict) -> DeliveryResult:
        outcome = self.primary.send(device_token, payload)
        if outcome.status is not DeliveryStatus.BAD_TOKEN or self.secondary is None:
            return outcome

        logger.info(
            "apns_trying_secondary_environment",
            primary=self.primary.environment,
            secondary=self.secondary.environment,
            token_suffix=device_token[-8:],
        )
        fallback = self.secondary.send(device_token, payload)
        if fallback.status is DeliveryStatus.BAD_TOKEN:
            # Rejected in both environments
            return DeliveryResult(
                status=DeliveryStatus.PERMANENT,
                reason=fallback.reason,
                status_code=fallback.status_code,
            )
        return fallback


def build_dispatcher(gateway: PersistenceGateway) -> NotificationDispatcher:
    """
    Build a dispatcher from the APN_* settings.

    Production is the primary environment when APN_PRODUCTION is true and
    sandbox otherwise; the other environment is the fallback.

    Raises:
        NotificationConfigError: If signing credentials or the bundle id are missing,
            or the signing key cannot produce a provider token
    """
    missing = [
        name
        for name, value in (
            ("APN_AUTH_KEY", APN_AUTH_KEY),
            ("APN_KEY_ID", APN_KEY_ID),
            ("APN_TEAM_ID", APN_TEAM_ID),
            ("APN_BUNDLE_ID", APN_BUNDLE_ID),
        )
        if not value
    ]
    if missing:
        raise NotificationConfigError(f"Missing push configuration: {', '.join(missing)}")

    signer = ProviderTokenSigner(APN_AUTH_KEY, key_id=APN_KEY_ID, team_id=APN_TEAM_ID)
    try:
        signer.create_token()
    except (jwt.PyJWTError, ValueError, TypeError, NotImplementedError) as e:
        raise NotificationConfigError(f"APN_AUTH_KEY cannot sign provider tokens: {e}") from e

    primary_env, secondary_env = (
        ("production", "sandbox") if APN_PRODUCTION else ("sandbox", "production")
    )

    logger.info("notification_dispatcher_ready", primary=primary_env, secondary=secondary_env)
    return NotificationDispatcher(
        gateway,
        primary=APNsClient(primary_env, APN_BUNDLE_ID, signer),
        secondary=APNsClient(secondary_env, APN_BUNDLE_ID, signer),
    )
