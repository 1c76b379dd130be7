"""
Exchange of a signed assertion for an OAuth2 bearer token
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import requests

from pushsvc.config import http_timeout
from pushsvc.errors import NetworkError, TokenExchangeError
from pushsvc.services.assertion_signer import SignedAssertion, TOKEN_URI

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


@dataclass(frozen=True)
class AccessToken:
    """Bearer token, valid for the current invocation only"""
    value: str = field(repr=False)
    obtained_at: datetime

    def preview(self) -> str:
        return f"{self.value[:8]}..."


def exchange(assertion: SignedAssertion) -> AccessToken:
    """
    POST the assertion to the token endpoint. Single attempt, no retry.

    Raises:
        NetworkError: connect/timeout/TLS failure
        TokenExchangeError: non-200 answer or no access_token in the body
    """
    try:
        response = requests.post(
            TOKEN_URI,
            data={
                "grant_type": JWT_BEARER_GRANT,
                "assertion": str(assertion),
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=http_timeout(),
            verify=True,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ OAuth request failed: {e}")
        raise NetworkError(f"OAuth request failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"❌ OAuth token request failed with status {response.status_code}: {response.text}")
        raise TokenExchangeError(
            f"OAuth token request failed with status {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )

    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict) or not payload.get("access_token"):
        logger.error(f"❌ Token endpoint returned no access_token: {response.text}")
        raise TokenExchangeError(
            "Failed to obtain access token",
            status_code=response.status_code,
            body=response.text,
        )

    token = AccessToken(value=payload["access_token"], obtained_at=datetime.now(timezone.utc))
    logger.info(f"✓ New FCM access token obtained ({token.preview()})")
    return token
