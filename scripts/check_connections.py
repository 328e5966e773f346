#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the database is reachable and the schema is in place.
Usage: python scripts/check_connections.py [--init-schema]
"""
import sys

from sqlalchemy import text

from app.core.config import get_settings
from app.db import postgres
from app.db.postgres import check_database_connection, get_db_session
from app.db.schema import init_schema
from app.services.settings_service import SettingsStore
from app.services.workforce_registry import WorkforceRegistry


def main():
    settings = get_settings()
    print("=" * 50)
    print("HACKATHON PORTAL - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Checking PostgreSQL...")
    print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if not check_database_connection():
        print("    PostgreSQL: FAILED")
        return 1
    print("    PostgreSQL: CONNECTED")

    if "--init-schema" in sys.argv:
        print("\n[2] Creating schema...")
        init_schema(postgres.engine)
        print("    Schema: READY")

    print("\n[3] Reading settings...")
    with get_db_session() as db:
        tables = db.execute(text("SELECT COUNT(*) FROM applications")).scalar()
        quota = SettingsStore(db).get_reviews_per_application()
        registry = WorkforceRegistry(db).load()
    print(f"    Applications: {tables}")
    print(f"    Reviews per application: {quota}")
    print(f"    Workforce entries: {len(registry.entries)} ({len(registry.disabled_ids())} disabled)")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
