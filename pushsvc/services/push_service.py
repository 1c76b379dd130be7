"""
Sending a push notification to every active device of a user
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from pushsvc.crud_devices import DeviceRegistry
from pushsvc.errors import DispatchError, NetworkError, StorageError, ValidationError
from pushsvc.services import assertion_signer, fcm_dispatcher, token_exchanger
from pushsvc.services.credentials import ServiceCredential, load_service_credential
from pushsvc.services.fcm_dispatcher import NotificationMessage

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    """Outcome of one device send"""
    device_id: int
    device_type: str
    success: bool
    error: Optional[str] = None
    status_code: Optional[int] = None
    deactivated: bool = False
    deactivation_failed: bool = False


@dataclass
class BatchResult:
    successful: int = 0
    failed: int = 0
    errors: List[DeliveryResult] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.successful + self.failed

    def as_dict(self) -> Dict[str, Any]:
        return {
            "devices_sent": self.successful,
            "devices_failed": self.failed,
            "errors": [
                {
                    "device_id": e.device_id,
                    "device_type": e.device_type,
                    "reason": e.error,
                    "status_code": e.status_code,
                    "deactivated": e.deactivated,
                    "deactivation_failed": e.deactivation_failed,
                }
                for e in self.errors
            ],
        }


def send_push_to_user(
    db: Session,
    user_id: int,
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None,
    options: Optional[Dict[str, Any]] = None,
    credential: Optional[ServiceCredential] = None,
) -> BatchResult:
    """
    Sends the notification to each active device of the user

    A failure on one device never stops the others. Tokens FCM reports as
    invalid are deactivated. Credential, signing and token exchange errors
    propagate: without an access token no device can be reached.

    Args:
        db: Database session
        user_id: Subscriber id
        title: Notification title
        body: Notification text
        data: Custom data (values are sent as strings)
        options: Platform hints ("android", "apns", "image")
        credential: Service account (loaded from settings when omitted)

    Returns:
        BatchResult
    """
    if not user_id or not title or not body:
        raise ValidationError("user_id, title and body are required")

    registry = DeviceRegistry(db)
    devices = registry.get_active_devices(user_id)

    if not devices:
        logger.warning(f"⚠️ No active devices found for user {user_id}")
        return BatchResult()

    if credential is None:
        credential = load_service_credential()

    # a fresh token for every batch, nothing is cached between invocations
    assertion = assertion_signer.sign(credential)
    access_token = token_exchanger.exchange(assertion)

    logger.info(f"📤 Sending push notification to {len(devices)} device(s) for user {user_id}")

    result = BatchResult()
    for device in devices:
        message = NotificationMessage(
            target_token=device.fcm_token,
            title=title,
            body=body,
            data=data or {},
            platform_hints=options or {},
        )

        try:
            fcm_dispatcher.send(access_token, credential.project_id, message)
            result.successful += 1
        except DispatchError as e:
            failure = DeliveryResult(
                device_id=device.id,
                device_type=device.device_type,
                success=False,
                error=e.message,
                status_code=e.status_code,
            )
            if e.is_invalid_token:
                try:
                    failure.deactivated = registry.deactivate_token(device.fcm_token) > 0
                except StorageError as storage_error:
                    failure.deactivation_failed = True
                    failure.error = f"{e.message} (token deactivation failed: {storage_error.message})"
            result.failed += 1
            result.errors.append(failure)
        except NetworkError as e:
            result.failed += 1
            result.errors.append(DeliveryResult(
                device_id=device.id,
                device_type=device.device_type,
                success=False,
                error=e.message,
            ))

    logger.info(
        f"Push notification results: {result.successful} successful, "
        f"{result.failed} failed for user {user_id}"
    )
    return result
