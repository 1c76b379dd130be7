"""
Sending one message through the FCM HTTP v1 API
"""
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from pushsvc.config import settings, http_timeout
from pushsvc.errors import DispatchError, NetworkError
from pushsvc.services.token_exchanger import AccessToken

logger = logging.getLogger(__name__)

DEFAULT_ANDROID_CONFIG = {
    "priority": "high",
    "notification": {
        "click_action": "FLUTTER_NOTIFICATION_CLICK",
    },
}

DEFAULT_APNS_CONFIG = {
    "headers": {
        "apns-priority": "10",
    },
}


@dataclass
class NotificationMessage:
    target_token: str
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    # optional "android", "apns" and "image" overrides
    platform_hints: Dict[str, Any] = field(default_factory=dict)


def stringify_data(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """FCM only accepts string values in the data payload"""
    if not data:
        return {}

    result = {}
    for key, value in data.items():
        if value is None:
            result[str(key)] = ""
        elif isinstance(value, bool):
            result[str(key)] = "true" if value else "false"
        else:
            result[str(key)] = str(value)
    return result


def build_envelope(message: NotificationMessage) -> Dict[str, Any]:
    notification = {
        "title": message.title,
        "body": message.body,
    }
    if message.platform_hints.get("image"):
        notification["image"] = message.platform_hints["image"]

    body: Dict[str, Any] = {
        "token": message.target_token,
        "notification": notification,
    }

    data = stringify_data(message.data)
    if data:
        body["data"] = data

    body["android"] = message.platform_hints.get("android") or copy.deepcopy(DEFAULT_ANDROID_CONFIG)
    body["apns"] = message.platform_hints.get("apns") or copy.deepcopy(DEFAULT_APNS_CONFIG)

    return {"message": body}


def messages_url(project_id: str) -> str:
    return f"{settings.FCM_API_BASE}/{project_id}/messages:send"


def _parse_error(response: requests.Response):
    """Returns (message, error_code) from an FCM error body"""
    try:
        payload = response.json()
    except ValueError:
        return "Unknown error", None

    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return "Unknown error", None

    message = error.get("message") or "Unknown error"
    error_code = error.get("status")
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            error_code = detail["errorCode"]
            break

    return message, error_code


def send(token: AccessToken, project_id: str, message: NotificationMessage) -> bool:
    """
    Send a single message. Exactly one HTTP call, no retry.

    Returns:
        bool: True on HTTP 200

    Raises:
        NetworkError: connect/timeout/TLS failure
        DispatchError: FCM answered with a non-200 status
    """
    token_preview = f"{message.target_token[:20]}..."

    try:
        response = requests.post(
            messages_url(project_id),
            json=build_envelope(message),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {token.value}",
            },
            timeout=http_timeout(),
            verify=True,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"FCM request failed for token {token_preview}: {e}")
        raise NetworkError(f"FCM request failed: {e}") from e

    if response.status_code != 200:
        error_message, error_code = _parse_error(response)
        logger.error(f"FCM API error (HTTP {response.status_code}) for token {token_preview}: {response.text}")
        raise DispatchError(
            error_message,
            status_code=response.status_code,
            body=response.text,
            error_code=error_code,
        )

    logger.info(f"✓ FCM message sent to {token_preview}")
    return True
