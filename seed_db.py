# seed_db.py
"""
Database Seeding Script
=======================

Fills the registry (destinations, treatment types, vehicles, drivers and
patients) with demo records, written through the same repository the
service uses.

Usage:
    python seed_db.py --records 20
    python seed_db.py --records 50 --export-csv --csv-dir data/output

Requirements:
    - A valid database configuration (DB_DRIVER and friends, see .env).
    - Migrations applied (``alembic upgrade head``).
"""

import sys
import argparse
import asyncio
from scripts.db import seed_db, DEFAULT_DATA_TEMPLATE
from app.db import DbManager
from app.persistence import SqlEntityRepository
from common.config import DatabaseConfig, get_config, initialize_config
from common.api_error import ConfigurationError
from dotenv import load_dotenv


def get_db_config() -> DatabaseConfig:
    """
    Load and validate database configuration.

    Raises:
        SystemExit: If configuration cannot be loaded or has no database.
    """
    try:
        config = initialize_config()
    except ConfigurationError as e:
        print(f"FATAL: Configuration error:\n{e}")
        sys.exit(1)

    if config.database is None:
        print("FATAL: DB_DRIVER is not set; nothing to seed")
        sys.exit(1)
    return get_config().database  # type: ignore[return-value]


async def run_seed_db(
    _db_config: DatabaseConfig,
    records: int,
    export_csv: bool,
    csv_dir: str,
):
    """
    Example:
        >>> asyncio.run(run_seed_db(db_cfg, records=20, export_csv=True, csv_dir="data/test"))
    """
    db_manager = DbManager.from_config(_db_config)
    await db_manager.verify_connection()
    repository = SqlEntityRepository(db_manager)
    try:
        await seed_db(
            repository=repository,
            data_template=DEFAULT_DATA_TEMPLATE,
            records=records,
            export_csv=export_csv,
            csv_dir=csv_dir,
        )
    finally:
        await repository.close()


def main():
    parser = argparse.ArgumentParser(description="Seed demo registry data")
    parser.add_argument(
        "--records",
        type=int,
        required=True,
        help="Number of records to insert per table (REQUIRED)",
    )
    parser.add_argument(
        "--export-csv", action="store_true", help="Export seeded data to CSV"
    )
    parser.add_argument(
        "--csv-dir", type=str, default="data/seed", help="Directory to export CSV files"
    )

    args = parser.parse_args()
    _db_config = get_db_config()
    asyncio.run(run_seed_db(_db_config, args.records, args.export_csv, args.csv_dir))


if __name__ == "__main__":
    load_dotenv()
    main()
