#!/usr/bin/env python3
"""
Delete history entries older than the retention period, for every account.

Run from project root with DATABASE_URL set:
  python scripts/purge_old_history.py            # uses HISTORY_RETENTION_DAYS (default 90)
  python scripts/purge_old_history.py --days 30
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")

from study_helper.core.config import Settings
from study_helper.db.session import build_engine, build_session_factory
from study_helper.services.history_store import HistoryStore


def main() -> None:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--days", type=int, default=settings.history_retention_days)
    args = parser.parse_args()

    engine = build_engine(settings.database_url)
    Session = build_session_factory(engine)
    sess = Session()
    try:
        deleted = HistoryStore(sess).purge_older_than(args.days)
        print(f"Deleted {deleted} history entries older than {args.days} days")
    finally:
        sess.close()
        engine.dispose()


if __name__ == "__main__":
    main()
