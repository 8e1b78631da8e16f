"""
Create the watch history tables in the configured database.

Usage:
    python scripts/create_tables.py

    # Recreate from scratch (drops existing data)
    python scripts/create_tables.py --drop
"""

import sys
from pathlib import Path

# Add parent directory to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import logging
import argparse

from sqlalchemy import create_engine

from tvbingefriend_watch_history.models import Base
from tvbingefriend_watch_history.models.database import get_engine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def create_tables(engine, drop: bool = False) -> list:
    """
    Create all tables known to the models.

    Args:
        engine: SQLAlchemy engine
        drop: Drop existing tables first

    Returns:
        Names of the tables managed by the models
    """
    if drop:
        logger.info("Dropping existing tables...")
        Base.metadata.drop_all(engine)

    Base.metadata.create_all(engine)
    table_names = sorted(Base.metadata.tables.keys())
    logger.info(f"✓ Tables ready: {', '.join(table_names)}")
    return table_names


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description='Create the watch history database tables'
    )
    parser.add_argument(
        '--database-url',
        type=str,
        default=None,
        help='Database URL (default: DATABASE_URL from config)'
    )
    parser.add_argument(
        '--drop',
        action='store_true',
        help='Drop existing tables before creating them'
    )

    args = parser.parse_args()

    try:
        engine = create_engine(args.database_url) if args.database_url else get_engine()
        create_tables(engine, drop=args.drop)
    except Exception as e:
        logger.error(f"Error creating tables: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
