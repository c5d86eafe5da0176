#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from app.core.config import DEV_BOOTSTRAP_ALLOW, IS_DEV  # noqa: E402
from app.core.database import SessionLocal, engine  # noqa: E402
from app.services.admin_bootstrap import ensure_users_table, upsert_super_admin  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote a super admin account.")
    parser.add_argument("--email", required=True, help="Super admin email")
    parser.add_argument("--password", help="Super admin password (required for new accounts)")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Run without DEV_BOOTSTRAP_ALLOW=1",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if not DEV_BOOTSTRAP_ALLOW and not args.force:
        print("Bootstrap disabled. Set DEV_BOOTSTRAP_ALLOW=1 or pass --force.")
        return 1

    try:
        ensure_users_table(engine)
    except RuntimeError as exc:
        print(str(exc))
        return 1

    db = SessionLocal()
    try:
        admin, created = upsert_super_admin(db, email=args.email, password=args.password)
    except ValueError as exc:
        print(str(exc))
        return 1
    finally:
        db.close()

    action = "created" if created else "updated"
    print(f"Super admin {action}: id={admin.id} email={admin.email}")
    if IS_DEV:
        password_info = args.password if args.password else "<unchanged>"
        print(f"DEV summary -> Email: {admin.email} | Password: {password_info}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
