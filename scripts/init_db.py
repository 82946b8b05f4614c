#!/usr/bin/env python3
"""
Database initialization script for PDCA Planner
Creates the SQLite database with the goals schema
"""

import sqlite3
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pdca.core.config import Config
from pdca.core.database import Database


def init_database(db_path: Path, force: bool = False) -> bool:
    """Create the database file and goals schema at db_path"""

    if db_path.exists() and not force:
        response = input(f"Database already exists at {db_path}. Overwrite? (yes/no): ")
        if response.lower() != 'yes':
            print("Aborting database initialization.")
            return False
        force = True

    if db_path.exists() and force:
        db_path.unlink()

    print(f"Creating database at {db_path}...")

    try:
        db = Database(db_path, create=True)
        db.init_schema()
    except sqlite3.Error as e:
        print(f"✗ Database error: {e}")
        return False

    print("✓ Database schema created successfully!")
    print(f"✓ Database location: {db_path}")
    print(f"\n✓ Tables created: {', '.join(db.get_table_names())}")
    return True


if __name__ == "__main__":
    print("=" * 60)
    print("PDCA Planner - Database Initialization")
    print("=" * 60)
    print()

    success = init_database(Config().get_database_path(), force="--force" in sys.argv)

    if success:
        print("\n" + "=" * 60)
        print("Database initialization complete!")
        print("=" * 60)
        sys.exit(0)
    else:
        print("\n" + "=" * 60)
        print("Database initialization failed!")
        print("=" * 60)
        sys.exit(1)
