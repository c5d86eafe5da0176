#!/usr/bin/env python3
"""Mark promotions whose end_date has passed as expired.

Meant to be run from cron or by hand; nothing in the API process runs it.
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from app.core.database import SessionLocal  # noqa: E402
from app.core.logging_setup import configure_logging  # noqa: E402
from app.services.promotions import expire_past_due_promotions  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Expire promotions past their end date.")
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="Reference time in UTC (ISO 8601); defaults to the current time",
    )
    return parser.parse_args()


def main() -> int:
    configure_logging()
    args = parse_args()

    db = SessionLocal()
    try:
        expired = expire_past_due_promotions(db, now=args.now)
    finally:
        db.close()

    print(f"Expired promotions: {expired}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
