"""
Ready-made notifications for platform events (purchases, wallet, account)
"""
import time
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from pushsvc.services.push_service import BatchResult, send_push_to_user

# transaction_type -> (success title, success body, failure title, failure body)
PURCHASE_TEMPLATES = {
    "airtime": (
        "Airtime Purchase Successful", "Your airtime purchase was successful.",
        "Airtime Purchase Failed", "Airtime purchase failed. Please try again.",
    ),
    "data": (
        "Data Purchase Successful", "Your data bundle purchase was successful.",
        "Data Purchase Failed", "Data bundle purchase failed. Please try again.",
    ),
    "cable": (
        "Cable Subscription Successful", "Your cable subscription was successful.",
        "Cable Subscription Failed", "Cable subscription failed. Please try again.",
    ),
    "electricity": (
        "Electricity Purchase Successful", "Your electricity purchase was successful.",
        "Electricity Purchase Failed", "Electricity purchase failed. Please try again.",
    ),
}

FORWARDED_FIELDS = ("transaction_id", "amount", "network", "reference")


def format_amount(amount: Any) -> str:
    try:
        return f"₦{float(amount):,.0f}"
    except (TypeError, ValueError):
        return f"₦{amount}"


def build_transaction_notification(
    transaction_type: str,
    transaction_data: Optional[Dict[str, Any]] = None,
) -> Tuple[str, str, Dict[str, Any]]:
    """
    Title, body and data payload for a transaction event

    Returns:
        tuple: (title, body, data)
    """
    transaction_data = transaction_data or {}

    data: Dict[str, Any] = {
        "type": "transaction",
        "transaction_type": transaction_type,
        "timestamp": int(time.time()),
    }
    for name in FORWARDED_FIELDS:
        if name in transaction_data:
            data[name] = transaction_data[name]

    status = transaction_data.get("status", "success")
    failed = status in ("error", "failed")

    if transaction_type in PURCHASE_TEMPLATES:
        ok_title, ok_body, fail_title, fail_body = PURCHASE_TEMPLATES[transaction_type]
        if failed:
            return fail_title, fail_body, data
        return ok_title, ok_body, data

    amount = format_amount(transaction_data.get("amount", 0))

    if transaction_type == "wallet_credit":
        return "💰 Wallet Credited", f"{amount} has been added to your wallet", data
    if transaction_type == "refund":
        return "↩️ Refund Processed", f"{amount} refund has been processed", data
    if transaction_type == "welcome_bonus":
        return (
            "🎉 Welcome!",
            "You've received a welcome bonus. Check your account to claim it!",
            data,
        )
    if transaction_type == "profile_updated":
        return "✅ Profile Updated", "Your profile has been successfully updated", data
    if transaction_type == "pin_changed":
        return "🔐 PIN Changed", "Your transaction PIN has been successfully updated", data

    return "✓ Transaction Complete", "Your transaction has been processed successfully", data


def send_transaction_notification(
    db: Session,
    user_id: int,
    transaction_type: str,
    transaction_data: Optional[Dict[str, Any]] = None,
) -> BatchResult:
    title, body, data = build_transaction_notification(transaction_type, transaction_data)
    return send_push_to_user(db, user_id, title, body, data)


def send_error_notification(
    db: Session,
    user_id: int,
    error_message: str,
    transaction_type: Optional[str] = None,
) -> BatchResult:
    data: Dict[str, Any] = {"type": "error", "timestamp": int(time.time())}
    if transaction_type:
        data["transaction_type"] = transaction_type

    return send_push_to_user(db, user_id, "⚠️ Transaction Failed", f"Error: {error_message}", data)


def send_wallet_notification(
    db: Session,
    user_id: int,
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None,
) -> BatchResult:
    payload = dict(data or {})
    payload["type"] = "wallet"
    payload["timestamp"] = int(time.time())
    return send_push_to_user(db, user_id, title, body, payload)
