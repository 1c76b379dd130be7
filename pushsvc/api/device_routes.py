"""
API endpoint for device token registration
"""
import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pushsvc.api.responses import api_response, error_response
from pushsvc.crud_devices import DeviceRegistry
from pushsvc.database import get_db
from pushsvc.errors import PushServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


# ============= Request Models =============

class DeviceRegisterRequest(BaseModel):
    """Body of POST /api/device/register"""
    user_id: Union[int, str]
    fcm_token: str
    device_type: Optional[str] = "android"  # android | ios | web
    device_name: Optional[str] = None


# ============= Endpoints =============

@router.post("/device/register", tags=["Devices"])
def register_device(
    request: DeviceRegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Registers a device FCM token for a user, or refreshes an existing one.

    201 when a new record was created, 200 when the token was already
    registered for this user.
    """
    try:
        result = DeviceRegistry(db).register(
            user_id=request.user_id,
            fcm_token=request.fcm_token,
            device_type=request.device_type,
            device_name=request.device_name,
        )
    except PushServiceError as e:
        logger.error(f"Device registration error: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected device registration error: {e}")
        return api_response(500, "Internal server error")

    data = {"device_id": result.device_id, "action": result.action}
    if result.action == "created":
        return api_response(201, "Device token registered successfully", data)
    return api_response(200, "Device token updated", data)


@router.options("/device/register", include_in_schema=False)
def register_device_preflight():
    return Response(status_code=200)


@router.api_route(
    "/device/register",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
def register_device_wrong_method():
    return api_response(405, "Method not allowed")
