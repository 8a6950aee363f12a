#!/usr/bin/env python
"""
Partner Reconciliation Script
=============================
CLI script to converge onboarding Partners, Users and ServicePartner
profiles.

This script:
1. Reads database configuration
2. Runs the reconciliation driver over all partners (or one)
3. Records the run in reconciliation_runs
4. Prints a summary with one line per failed partner

Usage:
    python scripts/run_partner_reconciliation.py
    python scripts/run_partner_reconciliation.py --dry-run
    python scripts/run_partner_reconciliation.py --partner-id 6650f0c2a1
    python scripts/run_partner_reconciliation.py --log-level DEBUG --log-file logs/reconcile.log
"""

import sys
import argparse
import logging
from pathlib import Path
from datetime import datetime

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from partner_sync.db_utils import resolve_config_path
from partner_sync.logging_config import setup_logging
from partner_sync.reconciliation import run_reconciliation

logger = logging.getLogger(__name__)


def print_banner(dry_run: bool):
    """Print the application banner."""
    print()
    print("=" * 70)
    print("  Partner Sync - Identity Reconciliation")
    if dry_run:
        print("  DRY RUN: no Users or profiles will be written")
    print("=" * 70)
    print()


def print_summary(result: dict, elapsed_seconds: float):
    """Print a formatted summary of the reconciliation results."""
    print()
    print("=" * 70)
    print("  RECONCILIATION SUMMARY")
    print("=" * 70)
    print()

    print("  PARTNERS:")
    print(f"    Total Processed:     {result.get('total_partners', 0):,}")
    print(f"    Already Synced:      {result.get('already_synced', 0):,}")
    print(f"    Newly Created:       {result.get('created', 0):,}")
    print(f"    Fixed:               {result.get('fixed', 0):,}")
    print(f"    Failed:              {result.get('failed', 0):,}")
    print()
    print(f"  USERS CREATED:         {result.get('users_created', 0):,}")
    print()

    failures = result.get('failures', [])
    if failures:
        print("  FAILED PARTNERS:")
        for failure in failures:
            line = (
                f"    - {failure['partner_id']} ({failure.get('phone_number') or 'no phone'}) "
                f"{failure['kind']}: {failure['message']}"
            )
            print(line)
            for field_name, message in failure.get('field_errors', {}).items():
                print(f"        {field_name}: {message}")
        print()

    errors = result.get('errors', [])
    if errors:
        print("  ERRORS:")
        for error in errors:
            print(f"    - {error}")
        print()

    print(f"  ELAPSED TIME: {elapsed_seconds:.2f} seconds")
    print()
    print("=" * 70)

    if errors or failures:
        print("  STATUS: COMPLETED WITH ERRORS")
    elif result.get('total_partners', 0) == 0:
        print("  STATUS: NO PARTNERS TO PROCESS")
    else:
        print("  STATUS: SUCCESS")

    print("=" * 70)
    print()


def main():
    """Main entry point for partner reconciliation."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description='Partner Identity Reconciliation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                           # Reconcile every partner
  %(prog)s --dry-run                 # Report what would change
  %(prog)s --partner-id ID           # Reconcile one partner
  %(prog)s --log-level DEBUG         # Verbose logging

For each partner the reconciliation will:
  1. Find the User by phone or email, creating one if missing
  2. Map service category names to catalog ids
  3. Create or merge the ServicePartner profile (always left active)
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help='Path to database configuration file (default: $DB_CONFIG_PATH or config/db_config.yml)'
    )

    parser.add_argument(
        '--partner-id',
        default=None,
        help='Reconcile only this partner'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Resolve and compare without writing Users or profiles'
    )

    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging verbosity level (default: INFO)'
    )

    parser.add_argument(
        '--log-file',
        default=None,
        help='Also write logs to this rotating file'
    )

    args = parser.parse_args()

    setup_logging(log_file=args.log_file, log_level=args.log_level)
    print_banner(args.dry_run)

    config_path = resolve_config_path(args.config)
    if not Path(config_path).exists():
        logger.error(f"Configuration file not found: {config_path}")
        sys.exit(1)

    logger.info("Configuration:")
    logger.info(f"  Database config: {config_path}")

    start_time = datetime.now()

    try:
        result = run_reconciliation(
            db_config_path=config_path,
            partner_id=args.partner_id,
            dry_run=args.dry_run
        )
    except Exception as e:
        logger.error(f"Reconciliation failed: {e}", exc_info=True)
        elapsed = (datetime.now() - start_time).total_seconds()
        print()
        print("=" * 70)
        print("  RECONCILIATION FAILED")
        print(f"  Error: {e}")
        print(f"  Elapsed: {elapsed:.2f} seconds")
        print("=" * 70)
        sys.exit(1)

    elapsed = (datetime.now() - start_time).total_seconds()
    print_summary(result, elapsed)

    if result.get('failed') or result.get('errors'):
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()
