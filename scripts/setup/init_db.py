# scripts/setup/init_db.py
"""
Prepare the local workflow journal: check the database is reachable,
create any missing tables and show what exists afterwards.
Safe to run repeatedly; existing tables and rows are left alone.

Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from fleet_rental.config import settings
from fleet_rental.database import create_tables, engine


def check_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        print(f"❌ Journal database unreachable: {e}")
        return False
    return True


def list_tables() -> list[str]:
    return sorted(inspect(engine).get_table_names())


def main() -> int:
    print(f"🧾 Workflow journal at {settings.DATABASE_URL}")

    if not check_connection():
        print("   Fix DATABASE_URL in .env; leave it unset to use the local SQLite file.")
        return 1

    before = set(list_tables())
    create_tables()
    after = list_tables()

    for table in after:
        marker = "existing" if table in before else "created"
        print(f"   • {table:<24} {marker}")

    print(f"\n✅ {len(after)} table(s) ready. Start the API with:")
    print("   uvicorn fleet_rental.main:app --host 0.0.0.0 --port 8080 --reload")
    return 0


if __name__ == "__main__":
    sys.exit(main())
