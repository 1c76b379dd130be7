"""
Loading of the Firebase service account credential
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pushsvc.config import settings
from pushsvc.errors import CredentialError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("private_key", "client_email", "project_id")


@dataclass(frozen=True)
class ServiceCredential:
    """Service account identity used to mint access tokens"""
    private_key: str = field(repr=False)
    client_email: str
    project_id: str


def credential_from_dict(data: dict) -> ServiceCredential:
    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        raise CredentialError(f"Service account JSON is missing: {', '.join(missing)}")

    return ServiceCredential(
        private_key=data["private_key"],
        client_email=data["client_email"],
        project_id=data["project_id"],
    )


def load_service_credential(path: Optional[str] = None) -> ServiceCredential:
    """
    Read the service account JSON file

    Args:
        path: Path to the JSON file (defaults to FIREBASE_CREDENTIALS_PATH)

    Returns:
        ServiceCredential
    """
    credential_path = Path(path or settings.FIREBASE_CREDENTIALS_PATH)

    if not credential_path.exists():
        logger.error(f"Service account key not found at {credential_path}")
        raise CredentialError(f"Service account JSON not found at: {credential_path}")

    try:
        data = json.loads(credential_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read service account key {credential_path}: {e}")
        raise CredentialError("Invalid service account JSON format") from e

    if not isinstance(data, dict):
        raise CredentialError("Invalid service account JSON format")

    credential = credential_from_dict(data)
    logger.info(f"Loaded service account {credential.client_email} (project {credential.project_id})")
    return credential
