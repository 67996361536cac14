"""
Apple Push Notification service client over HTTP/2.

Each APNsClient talks to one environment (production or sandbox). A device
token is only valid in the environment matching the build that registered
it, so the notification dispatcher holds one client per environment.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx
import structlog

from rental_monitor.network.auth import ProviderTokenSigner

logger = structlog.get_logger(__name__)

PRODUCTION_URL = "https://api.push.apple.com"
SANDBOX_URL = "https://api.sandbox.push.apple.com"
ENVIRONMENT_URLS = {"production": PRODUCTION_URL, "sandbox": SANDBOX_URL}

DEFAULT_TIMEOUT = 30.0

# The token belongs to the other environment, or is malformed
BAD_TOKEN_REASONS = {"BadDeviceToken"}
# The token will never succeed again in any environment
PERMANENT_REASONS = {"Unregistered", "DeviceTokenNotForTopic"}


class NotificationConfigError(RuntimeError):
    """Push credentials or bundle id are missing."""


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    BAD_TOKEN = "bad_token"
    PERMANENT = "permanent"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryResult:
    status: DeliveryStatus
    reason: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def delivered(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED


def build_payload(
    title: str, body: str, badge: int = 0, data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Build an APNs JSON payload with an alert and custom deep-link data.

    Custom keys sit next to "aps" at the top level of the payload.
    """
    payload: Dict[str, Any] = {
        "aps": {
            "alert": {"title": title, "body": body},
            "badge": badge,
            "sound": "default",
            "content-available": 1,
        }
    }
    if data:
        payload.update(data)
    return payload


def classify_response(status_code: int, reason: Optional[str]) -> DeliveryStatus:
    if status_code == 200:
        return DeliveryStatus.DELIVERED
    if reason in BAD_TOKEN_REASONS:
        return DeliveryStatus.BAD_TOKEN
    if status_code == 410 or reason in PERMANENT_REASONS:
        return DeliveryStatus.PERMANENT
    return DeliveryStatus.FAILED


class APNsClient:
    """
    Send alert notifications to device tokens in one APNs environment.

    Example:
        >>> client = APNsClient("production", "com.example.app", signer)
        >>> result = client.send(token, build_payload("Title", "Body", badge=1))
        >>> client.shutdown()
    """

    def __init__(
        self,
        environment: str,
        bundle_id: str,
        signer: ProviderTokenSigner,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if environment not in ENVIRONMENT_URLS:
            raise ValueError(f"Unknown APNs environment: {environment}")

        self.environment = environment
        self.base_url = ENVIRONMENT_URLS[environment]
        self.bundle_id = bundle_id
        self.signer = signer
        self._client = client or httpx.Client(http2=True, timeout=timeout)

    def send(self, device_token: str, payload: Dict[str, Any]) -> DeliveryResult:
        """
        Deliver one payload to one device token.

        An ExpiredProviderToken rejection triggers a single retry with a newly
        signed provider token. Transport errors come back as FAILED rather
        than raising.

        Returns:
            DeliveryResult: Classified outcome with the APNs reason, if any.
        """
        token = self.signer.get_token()
        res = self._post(device_token, payload, token)
        if isinstance(res, DeliveryResult):
            return res

        reason = self._reason(res)
        if res.status_code == 403 and reason == "ExpiredProviderToken":
            logger.info("apns_provider_token_expired", environment=self.environment)
            token = self.signer.refresh_token(prev_token=token)
            res = self._post(device_token, payload, token)
            if isinstance(res, DeliveryResult):
                return res
            reason = self._reason(res)

        status = classify_response(res.status_code, reason)
        if status is not DeliveryStatus.DELIVERED:
            logger.warning(
                "apns_delivery_failed",
                environment=self.environment,
                status_code=res.status_code,
                reason=reason,
                token_suffix=device_token[-8:],
            )
        return DeliveryResult(status=status, reason=reason, status_code=res.status_code)

    def shutdown(self) -> None:
        """Close the HTTP/2 connection pool."""
        self._client.close()

    def _post(
        self, device_token: str, payload: Dict[str, Any], provider_token: str
    ) -> httpx.Response | DeliveryResult:
        headers = {
            "authorization": f"bearer {provider_token}",
            "apns-topic": self.bundle_id,
            "apns-push-type": "alert",
            "apns-priority": "10",
        }
        try:
            return self._client.post(
                f"{self.base_url}/3/device/{device_token}", json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            logger.warning("apns_transport_error", environment=self.environment, error=str(e))
            return DeliveryResult(status=DeliveryStatus.FAILED, reason=str(e))

    @staticmethod
    def _reason(res: httpx.Response) -> Optional[str]:
        if res.status_code == 200:
            return None
        try:
            body = res.json()
        except ValueError:
            return None
        return body.get("reason") if isinstance(body, dict) else None
