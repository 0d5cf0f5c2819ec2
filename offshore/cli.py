"""
offshore.cli
============

Operator commands.

Examples
--------
$ offshore init-db          # first‑time table creation
$ offshore remind-due       # send payment reminders for stale pending orders
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import textwrap
from typing import List, Optional

from .db import SessionLocal, create_all
from .orders import remind_due_orders
from .settings import settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="offshore",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            Offshore incorporation utilities
            --------------------------------
            init-db     Create all tables (safe if they already exist)
            remind-due  Re-send payment reminders for pending orders
            """
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db", help="create tables")
    remind = sub.add_parser("remind-due", help="send payment reminders")
    remind.add_argument("--limit", type=int, default=settings.reminder_batch_size, help="max orders to remind")
    remind.add_argument("--app-url", default=settings.app_url, help="base URL used in payment links")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)

    if args.command == "init-db":
        create_all()
        print("✅ offshore schema initialised")
        return 0

    if args.command == "remind-due":
        create_all()
        with SessionLocal() as s:
            summary = asyncio.run(remind_due_orders(s, app_url=args.app_url, limit=args.limit))
        print(json.dumps(summary))
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
