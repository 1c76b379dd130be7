"""
API endpoint for manual push sending (testing / admin tools)
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pushsvc.api.responses import api_response, error_response
from pushsvc.config import settings
from pushsvc.database import get_db
from pushsvc.errors import PushServiceError
from pushsvc.services.push_service import send_push_to_user

logger = logging.getLogger(__name__)

router = APIRouter()


class SendNotificationRequest(BaseModel):
    """Manual send to all active devices of a user"""
    user_id: int
    title: str
    body: str
    data: Optional[Dict[str, Any]] = None


def require_admin_key(x_admin_key: Optional[str] = Header(default=None)):
    if settings.ADMIN_API_KEY and x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=401, detail="Invalid admin key")


@router.post("/notifications/send", tags=["Notifications"], dependencies=[Depends(require_admin_key)])
def send_notification(
    request: SendNotificationRequest,
    db: Session = Depends(get_db)
):
    """
    Sends a push to every active device of the user
    """
    try:
        result = send_push_to_user(
            db=db,
            user_id=request.user_id,
            title=request.title,
            body=request.body,
            data=request.data,
        )
    except PushServiceError as e:
        logger.error(f"Manual send to user {request.user_id} failed: {e.message}")
        return error_response(e)

    if result.attempted == 0:
        return api_response(200, "No devices registered for this user", result.as_dict())

    return api_response(200, f"Notification sent to {result.successful} device(s)", result.as_dict())
