"""
Clear the failed-login counter and lockout for an account.

Usage: python scripts/clear_user_lockout.py <username>
"""

import sys
from pathlib import Path

# Add project root
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.portal_app.context import build_context  # noqa: E402
from src.portal_app.errors import StoreUnavailable  # noqa: E402
from src.portal_app.services.account_service import AuthenticationEngine  # noqa: E402


def clear_lockout(username: str) -> int:
    context = build_context(audit_async=False)
    try:
        if AuthenticationEngine(context).unlock(username, admin_username="cli"):
            print(f"Cleared failed attempts and lockout for {username}.")
            return 0
        print(f"No account named {username}.")
        return 1
    except StoreUnavailable:
        print("Database is unreachable; see the error log for details.")
        return 2
    finally:
        context.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/clear_user_lockout.py <username>")
        raise SystemExit(64)
    raise SystemExit(clear_lockout(sys.argv[1]))
