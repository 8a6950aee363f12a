#!/usr/bin/env python
"""
Partner Link Check
==================
Read-only report of Partner -> User -> ServicePartner links, plus the last
recorded reconciliation run.

Usage:
    python scripts/check_partner_links.py
    python scripts/check_partner_links.py --only-broken
"""

import sys
import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

from partner_sync.db_utils import DatabaseManager, resolve_config_path
from partner_sync.logging_config import setup_logging
from partner_sync.reconciliation import run_link_audit, summarize
from partner_sync.reconciliation.audit import LINKED
from partner_sync.run_tracking import get_latest_run

logger = logging.getLogger(__name__)


def print_last_run(config_path: str):
    db = DatabaseManager(config_path)
    try:
        run = get_latest_run(db)
    finally:
        db.close()

    print("  LAST RECONCILIATION RUN:")
    if run is None:
        print("    (none recorded)")
    else:
        print(f"    {run['started_at']}  scope={run['scope']}  status={run['status']}"
              f"{'  (dry run)' if run['dry_run'] else ''}")
        print(f"    created={run['profiles_created']}  fixed={run['profiles_fixed']}  "
              f"synced={run['already_synced']}  failed={run['failed']}")
    print()


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(description='Partner link check (read-only)')
    parser.add_argument('--config', default=None, help='Database config path')
    parser.add_argument('--only-broken', action='store_true', help='Hide fully linked partners')
    parser.add_argument('--log-level', default='WARNING', help='Logging level')
    args = parser.parse_args()

    setup_logging(log_level=args.log_level)
    config_path = resolve_config_path(args.config)

    try:
        statuses = run_link_audit(config_path)
    except Exception as e:
        logger.error(f"Link check failed: {e}", exc_info=True)
        return 1

    print()
    print("=" * 70)
    print("  PARTNER LINK CHECK")
    print("=" * 70)
    print()

    for status in statuses:
        if args.only_broken and status.state == LINKED:
            continue
        detail = f" - {status.detail}" if status.detail else ""
        print(f"  [{status.state:<15}] {status.partner_id}  {status.phone_number or '-'}"
              f"  user={status.user_id or '-'}  profile={status.profile_id or '-'}{detail}")

    print()
    print("  TOTALS:")
    for state, count in sorted(summarize(statuses).items()):
        print(f"    {state:<16} {count:,}")
    print()

    print_last_run(config_path)
    print("=" * 70)

    broken = [status for status in statuses if status.state != LINKED]
    return 1 if broken else 0


if __name__ == '__main__':
    sys.exit(main())
