#!/usr/bin/env python3
"""Quick script to check if the bracket tables exist in the database"""

import sys

from sqlalchemy import inspect

from bracket_engine.database import engine

REQUIRED_TABLES = [
    "tournament",
    "category",
    "tournamentcategory",
    "registration",
    "team",
    "zone",
    "zoneteam",
    "match",
    "matchset",
]


def check_tables():
    """Check if required bracket tables exist"""
    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()

    print("Checking for required bracket tables...")
    print(f"Database: {engine.url}")
    print()

    missing_tables = []
    for table in REQUIRED_TABLES:
        if table in existing_tables:
            print(f"✓ {table} exists")
        else:
            print(f"✗ {table} MISSING")
            missing_tables.append(table)

    print()
    if missing_tables:
        print("ERROR: Missing tables detected!")
        print("Run migrations with: alembic upgrade head")
        return False
    print("All required tables exist!")
    return True


if __name__ == "__main__":
    try:
        success = check_tables()
        sys.exit(0 if success else 1)
    except Exception as e:
        print(f"Error checking tables: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
