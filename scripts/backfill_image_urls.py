#!/usr/bin/env python3
"""
Backfill IMAGE_URLS for items created before multi-image uploads.

Reads already fill in image lists on the fly, so running this is never
required. It just makes the stored rows match what the API returns.
Running it twice is harmless: the second run finds nothing to update.

Usage:
    python scripts/backfill_image_urls.py --dry-run
    python scripts/backfill_image_urls.py

Requires:
    - .env file with Snowflake credentials (same variables as the API)
"""

import argparse
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from catalog.api.dependencies import snowflake_config_from_settings  # noqa: E402
from catalog.config.settings import get_settings  # noqa: E402
from catalog.infrastructure.snowflake.client import (  # noqa: E402
    SnowflakeConnectionError,
    create_snowflake_connection,
)
from catalog.infrastructure.snowflake.repositories.items import ItemRepository  # noqa: E402


def run_backfill(repository: ItemRepository, dry_run: bool = False) -> int:
    """
    Count legacy rows and, unless dry_run, update them.

    Returns the number of rows that were (or would be) updated.
    """
    pending = repository.count_legacy_items()
    print(f"Items without image list: {pending}")

    if dry_run:
        print("\n=== DRY RUN - No rows will be updated ===")
        return pending

    if pending == 0:
        print("Nothing to do")
        return 0

    updated = repository.backfill_image_urls()
    print(f"\n=== Backfill Complete ===")
    print(f"Updated: {updated}")

    return updated


def main():
    parser = argparse.ArgumentParser(description='Backfill image lists for legacy catalog items')
    parser.add_argument('--dry-run', action='store_true', help='Count only, don\'t update')
    args = parser.parse_args()

    settings = get_settings()

    missing = [
        field for field in settings.validate_required_fields()
        if field.startswith('SNOWFLAKE')
    ]
    if missing and not settings.snowflake_mock_mode:
        print(f"ERROR: Missing {', '.join(missing)}")
        sys.exit(1)

    config = snowflake_config_from_settings(settings)

    try:
        print(f"Connecting to Snowflake database {settings.snowflake_database}.{settings.snowflake_schema}")
        with create_snowflake_connection(config=config, mock_mode=settings.snowflake_mock_mode) as conn:
            run_backfill(ItemRepository(conn), dry_run=args.dry_run)
    except SnowflakeConnectionError as e:
        print(f"ERROR connecting to Snowflake: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == '__main__':
    main()
