"""
CRUD operations for user device tokens
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pushsvc.errors import NotFoundError, StorageError, ValidationError
from pushsvc.models import DEVICE_TYPES, Subscriber, UserDevice

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 50
MAX_TOKEN_LENGTH = 255
MAX_DEVICE_NAME_LENGTH = 255

# Writers for the same token are serialised in-process; the partial unique
# index catches writers in other processes.
_LOCK_STRIPES = 64
_token_locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]


def _lock_for(fcm_token: str) -> threading.Lock:
    return _token_locks[hash(fcm_token) % _LOCK_STRIPES]


@dataclass(frozen=True)
class RegistrationResult:
    device_id: int
    action: str  # "created" | "updated"


def validate_registration(
    user_id: Union[int, str, None],
    fcm_token: Optional[str],
    device_type: Optional[str],
    device_name: Optional[str],
):
    """
    Checks the registration input and returns it normalised

    Returns:
        tuple: (user_id, fcm_token, device_type, device_name)
    """
    if user_id is None or isinstance(user_id, bool) or str(user_id).strip() == "" or not fcm_token:
        raise ValidationError("Missing required parameters: user_id, fcm_token")

    try:
        user_id = int(str(user_id).strip())
    except ValueError:
        raise ValidationError("Invalid user_id")

    if not isinstance(fcm_token, str):
        raise ValidationError("Invalid FCM token format")
    if device_type is not None and not isinstance(device_type, str):
        raise ValidationError(f"Invalid device_type. Must be: {', '.join(DEVICE_TYPES)}")
    if device_name is not None and not isinstance(device_name, str):
        raise ValidationError("device_name must be a string")

    fcm_token = fcm_token.strip()
    device_type = (device_type or "android").strip().lower()

    if device_type not in DEVICE_TYPES:
        raise ValidationError(f"Invalid device_type. Must be: {', '.join(DEVICE_TYPES)}")

    # FCM tokens are ~150+ chars, this only filters obvious garbage
    if len(fcm_token) < MIN_TOKEN_LENGTH or len(fcm_token) > MAX_TOKEN_LENGTH:
        raise ValidationError("Invalid FCM token format")

    if device_name is not None:
        device_name = device_name.strip() or None
    if device_name and len(device_name) > MAX_DEVICE_NAME_LENGTH:
        raise ValidationError(f"device_name must be at most {MAX_DEVICE_NAME_LENGTH} characters")

    return user_id, fcm_token, device_type, device_name


class DeviceRegistry:
    """
    Device tokens per user.

    Invariant: a token has at most one active row. Re-registering a token
    under another user deactivates the previous owner's row.
    """

    def __init__(self, db: Session):
        self.db = db

    # ============= Registration =============

    def register(
        self,
        user_id: Union[int, str],
        fcm_token: str,
        device_type: str = "android",
        device_name: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Creates a new device record or refreshes the existing one

        Raises:
            ValidationError: bad input
            NotFoundError: unknown user
            StorageError: database failure (transaction rolled back)
        """
        user_id, fcm_token, device_type, device_name = validate_registration(
            user_id, fcm_token, device_type, device_name
        )

        with _lock_for(fcm_token):
            try:
                result = self._register_locked(user_id, fcm_token, device_type, device_name)
                self.db.commit()
            except NotFoundError:
                self.db.rollback()
                raise
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(
                    f"Device registration failed: user_id={user_id}, "
                    f"token={fcm_token[:20]}..., device_type={device_type}: {e}"
                )
                raise StorageError("Failed to register device token") from e

        logger.info(f"Device {result.device_id} {result.action} for user {user_id}")
        return result

    def _register_locked(
        self,
        user_id: int,
        fcm_token: str,
        device_type: str,
        device_name: Optional[str],
    ) -> RegistrationResult:
        if not self._user_exists(user_id):
            raise NotFoundError("User not found")

        now = datetime.now(timezone.utc)

        existing = self.db.query(UserDevice).filter(
            UserDevice.user_id == user_id,
            UserDevice.fcm_token == fcm_token,
        ).order_by(UserDevice.id.desc()).with_for_update().first()

        if existing:
            # The token may have moved to someone else since this row was active
            self._deactivate_others(fcm_token, keep_id=existing.id, new_owner=user_id)

            existing.last_used = now
            existing.is_active = True
            existing.device_type = device_type
            existing.device_name = device_name
            self.db.flush()
            return RegistrationResult(device_id=existing.id, action="updated")

        self._deactivate_others(fcm_token, keep_id=None, new_owner=user_id)

        device = UserDevice(
            user_id=user_id,
            fcm_token=fcm_token,
            device_type=device_type,
            device_name=device_name,
            is_active=True,
            last_used=now,
        )
        self.db.add(device)
        self.db.flush()
        return RegistrationResult(device_id=device.id, action="created")

    def _deactivate_others(self, fcm_token: str, keep_id: Optional[int], new_owner: int) -> None:
        query = self.db.query(UserDevice).filter(UserDevice.fcm_token == fcm_token)
        if keep_id is not None:
            query = query.filter(UserDevice.id != keep_id)

        holders = query.with_for_update().all()
        if not holders:
            return

        previous_owners = sorted({d.user_id for d in holders if d.is_active and d.user_id != new_owner})
        for device in holders:
            device.is_active = False
        self.db.flush()

        if previous_owners:
            logger.warning(
                f"Device token {fcm_token[:20]}... reassigned from user(s) "
                f"{', '.join(str(u) for u in previous_owners)} to user {new_owner}"
            )

    def _user_exists(self, user_id: int) -> bool:
        return self.db.query(Subscriber.sId).filter(Subscriber.sId == user_id).first() is not None

    # ============= Lookup / maintenance =============

    def get_active_devices(self, user_id: int) -> List[UserDevice]:
        """
        Active devices of a user, most recently used first
        """
        try:
            return self.db.query(UserDevice).filter(
                UserDevice.user_id == user_id,
                UserDevice.is_active == True,  # noqa: E712
            ).order_by(UserDevice.last_used.desc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load devices for user {user_id}: {e}")
            raise StorageError("Failed to load devices") from e

    def deactivate_token(self, fcm_token: str) -> int:
        """
        Deactivates every row holding the token (FCM reported it invalid)
        """
        with _lock_for(fcm_token):
            try:
                devices = self.db.query(UserDevice).filter(
                    UserDevice.fcm_token == fcm_token,
                    UserDevice.is_active == True,  # noqa: E712
                ).all()
                for device in devices:
                    device.is_active = False
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to deactivate token {fcm_token[:20]}...: {e}")
                raise StorageError("Failed to deactivate device token") from e

        if devices:
            logger.info(f"Device deactivated due to invalid token: {fcm_token[:20]}...")
        return len(devices)
