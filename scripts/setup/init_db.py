# scripts/setup/init_db.py
"""
Initialize database — creates the movement log table.
Run once before first launch, or after adding new models.
The refurbishment status database is owned by another system and is only checked for connectivity.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import create_tables, engine, status_engine
from app.config import settings
from sqlalchemy import inspect, text


def main():
    print("🗄️  Parking Monitor DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    tables = inspect(engine).get_table_names()
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in sorted(tables):
        print(f"   ✓ {t}")

    try:
        with status_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("\n✅ Status database connection OK")
    except Exception as e:
        print(f"\n⚠️  Status database unreachable ({e}) — status views will show no records")

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn app.main:app --host {settings.BACKEND_IP} --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
