"""
JWT assertion for the Google OAuth2 service-account flow (RS256)
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from pushsvc.errors import SigningError
from pushsvc.services.credentials import ServiceCredential

logger = logging.getLogger(__name__)

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
TOKEN_URI = "https://oauth2.googleapis.com/token"
ASSERTION_LIFETIME_SECONDS = 3600

JWT_ALGORITHM = "RS256"


@dataclass(frozen=True)
class SignedAssertion:
    header_b64: str
    payload_b64: str
    signature_b64: str

    @property
    def signing_input(self) -> str:
        return f"{self.header_b64}.{self.payload_b64}"

    def __str__(self) -> str:
        return f"{self.signing_input}.{self.signature_b64}"

    @classmethod
    def from_compact(cls, token: str) -> "SignedAssertion":
        header_b64, payload_b64, signature_b64 = token.split(".")
        return cls(header_b64=header_b64, payload_b64=payload_b64, signature_b64=signature_b64)


def build_claims(client_email: str, now: int) -> dict:
    return {
        "iss": client_email,
        "scope": FCM_SCOPE,
        "aud": TOKEN_URI,
        "iat": now,
        "exp": now + ASSERTION_LIFETIME_SECONDS,
    }


def _load_rsa_key(pem: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError(f"Malformed private key: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError("Private key is not an RSA key")
    return key


def sign(credential: ServiceCredential, now: Optional[int] = None) -> SignedAssertion:
    """
    Build and sign the assertion exchanged for an access token

    Args:
        credential: Service account credential
        now: Issue time in epoch seconds (defaults to the current time)

    Returns:
        SignedAssertion
    """
    if now is None:
        now = int(time.time())

    key = _load_rsa_key(credential.private_key)
    try:
        token = jwt.encode(
            build_claims(credential.client_email, now),
            key,
            algorithm=JWT_ALGORITHM,
            headers={"typ": "JWT"},
        )
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        logger.error(f"Signing failed for {credential.client_email}: {e}")
        raise SigningError(f"Signing failed: {e}") from e

    return SignedAssertion.from_compact(token)
