"""Generate a strong JWT_SECRET_KEY for env.properties."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.portal_app.utils.jwt_utils import generate_secret_key  # noqa: E402


def main() -> int:
    print(f"JWT_SECRET_KEY={generate_secret_key()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
