import time

import jwt
import structlog

from rental_monitor.cache import TokenCache, token_cache

logger = structlog.get_logger(__name__)


def normalize_auth_key(raw_key: str) -> str:
    """
    Clean up a .p8 signing key read from the environment.

    Keys pasted into CI secrets often arrive wrapped in quotes and with
    literal "\\n" sequences instead of newlines.

    Args:
        raw_key (str): Key text as stored in APN_AUTH_KEY.

    Returns:
        str: PEM text usable by PyJWT.
    """
    key = raw_key.strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in ("'", '"'):
        key = key[1:-1]
    return key.replace("\\n", "\n").strip()


class ProviderTokenSigner:
    """
    Sign and cache APNs provider authentication tokens (ES256 JWTs).

    One signer is shared by the production and sandbox clients; tokens are
    valid in both environments.

    Example:
        >>> signer = ProviderTokenSigner(auth_key, key_id="ABC123", team_id="TEAM42")
        >>> headers = {"authorization": f"bearer {signer.get_token()}"}
    """

    def __init__(self, auth_key: str, key_id: str, team_id: str, cache: TokenCache = token_cache):
        self.auth_key = normalize_auth_key(auth_key)
        self.key_id = key_id
        self.team_id = team_id
        self.cache = cache

    def create_token(self) -> str:
        """
        Sign a fresh provider token.

        Returns:
            str: Encoded JWT with iss=team id, iat=now and kid=key id.
        """
        logger.info("apns_provider_token_signed", key_id=self.key_id)
        return jwt.encode(
            {"iss": self.team_id, "iat": int(time.time())},
            self.auth_key,
            algorithm="ES256",
            headers={"kid": self.key_id},
        )

    def get_token(self) -> str:
        """
        Get the cached provider token, signing a new one when missing or expired.
        """
        cached = self.cache.get(self.key_id)
        if cached:
            return cached

        token = self.create_token()
        self.cache.set(self.key_id, token)
        return token

    def refresh_token(self, prev_token: str | None = None) -> str:
        """
        Replace a token APNs rejected as expired.

        If another caller already replaced prev_token, the newer cached token
        is returned instead of signing again.
        """
        cached = self.cache.get(self.key_id)
        if cached and cached != prev_token:
            return cached

        self.cache.invalidate(self.key_id)
        return self.get_token()
