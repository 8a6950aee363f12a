"""
Partner Sync - Database Setup Script
Creates the configured database and applies the schema

Usage:
    python scripts/setup_database.py

    Or with custom config:
    python scripts/setup_database.py --config config/db_config.yml
"""

import sys
import argparse
from pathlib import Path

from dotenv import load_dotenv

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from partner_sync.db_utils import (
    DatabaseManager,
    apply_schema,
    create_database_if_not_exists,
    resolve_config_path,
)
from partner_sync.logging_config import setup_logging, get_logger

REQUIRED_TABLES = ['partners', 'users', 'service_categories', 'service_partners', 'reconciliation_runs']


def main():
    """Setup database and apply schema"""
    load_dotenv()

    parser = argparse.ArgumentParser(description='Partner Sync Database Setup')
    parser.add_argument(
        '--config',
        default=None,
        help='Path to database config YAML'
    )
    parser.add_argument(
        '--schema',
        default='sql/schema.sql',
        help='Path to schema SQL file'
    )

    args = parser.parse_args()
    config_path = resolve_config_path(args.config)

    setup_logging(log_level='INFO')
    logger = get_logger(__name__)

    logger.info("=" * 80)
    logger.info("Partner Sync - Database Setup")
    logger.info("=" * 80)

    try:
        logger.info("Step 1: Creating database if not exists...")
        create_database_if_not_exists(config_path)

        logger.info(f"Step 2: Applying schema from {args.schema}...")
        apply_schema(config_path, args.schema)

        logger.info("Step 3: Verifying tables...")
        db = DatabaseManager(config_path)
        try:
            missing = [table for table in REQUIRED_TABLES if not db.table_exists(table)]
        finally:
            db.close()
        if missing:
            logger.error(f"✗ Tables missing after schema apply: {', '.join(missing)}")
            return 1

        logger.info("=" * 80)
        logger.info("✓ Database setup completed successfully!")
        logger.info("=" * 80)

        return 0

    except Exception as e:
        logger.error(f"✗ Database setup failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
