"""
Test push sending from the command line

    pushsvc-send-test --user-id 1 --title "Test" --body "Message"
"""
import argparse
import logging
import sys

from pushsvc.database import session_scope
from pushsvc.errors import PushServiceError
from pushsvc.services.credentials import load_service_credential
from pushsvc.services.push_service import send_push_to_user

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send a test push notification to a user's devices")
    parser.add_argument("--user-id", type=int, required=True, help="Subscriber id")
    parser.add_argument("--title", default="Test Notification")
    parser.add_argument("--body", default="This is a test push notification")
    parser.add_argument("--credentials", default=None, help="Service account JSON (default from settings)")
    return parser


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args(argv)

    try:
        credential = load_service_credential(args.credentials)
        with session_scope() as db:
            result = send_push_to_user(
                db,
                user_id=args.user_id,
                title=args.title,
                body=args.body,
                data={"type": "test", "user_id": args.user_id},
                credential=credential,
            )
    except PushServiceError as e:
        print(f"❌ {type(e).__name__}: {e.message}")
        return 1

    if result.attempted == 0:
        print(f"❌ No active devices found for user {args.user_id}")
        return 1

    print(f"✅ Sent: {result.successful}, failed: {result.failed}")
    for failure in result.errors:
        suffix = " (deactivated)" if failure.deactivated else ""
        print(f"   • device {failure.device_id} [{failure.device_type}]: {failure.error}{suffix}")

    return 0 if result.successful > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
