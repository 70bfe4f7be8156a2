#!/usr/bin/env python3
"""
isupipe Migration Runner

Runs all migration files in order from db/migrations/

Usage:
    python scripts/run_migrations.py

Requirements:
    - DATABASE_URL environment variable must be set
    - Migration files must follow naming convention: NNN_name.sql
    - Migrations are idempotent (CREATE ... IF NOT EXISTS)
"""

import os
import sys
from pathlib import Path

import psycopg
from dotenv import load_dotenv

load_dotenv()

MIGRATIONS_DIR = Path(__file__).parent.parent / 'db' / 'migrations'

REQUIRED_TABLES = [
    'users',
    'themes',
    'icons',
    'livestreams',
    'tags',
    'livestream_tags',
    'reactions',
    'user_sessions'
]


def run_migrations(database_url: str, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Run all migration files in order.

    Args:
        database_url: Postgres connection URL
        migrations_dir: Directory holding NNN_name.sql files
    """
    if not migrations_dir.exists():
        print(f"Error: migrations directory not found: {migrations_dir}")
        sys.exit(1)

    migration_files = sorted(migrations_dir.glob('*.sql'))

    if not migration_files:
        print(f"Warning: no migration files found in {migrations_dir}")
        return

    print(f"Found {len(migration_files)} migration(s)")
    print("=" * 60)

    with psycopg.connect(database_url) as conn:
        for migration_file in migration_files:
            print(f"Running: {migration_file.name}...", end=' ')

            try:
                sql = migration_file.read_text(encoding='utf-8')

                with conn.cursor() as cur:
                    cur.execute(sql)

                conn.commit()
                print("ok")

            except psycopg.Error as e:
                print("FAILED")
                print(f"   Error: {e}")
                conn.rollback()
                print("\nMigration halted. Fix the error and try again.")
                sys.exit(1)

    print("=" * 60)
    print("All migrations completed successfully")


def verify_migrations(database_url: str) -> bool:
    """Check that every required table exists."""
    print("\nVerifying database schema...")

    missing = []
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            for table in REQUIRED_TABLES:
                cur.execute("""
                    SELECT EXISTS (
                        SELECT 1 FROM information_schema.tables
                        WHERE table_schema = 'public' AND table_name = %s
                    )
                """, (table,))

                if cur.fetchone()[0]:
                    print(f"   ok       {table}")
                else:
                    print(f"   MISSING  {table}")
                    missing.append(table)

    return not missing


if __name__ == '__main__':
    print("=" * 60)
    print("isupipe Migration Runner")
    print("=" * 60)

    database_url = os.getenv('DATABASE_URL')
    if not database_url:
        print("Error: DATABASE_URL environment variable not set")
        sys.exit(1)

    run_migrations(database_url)
    sys.exit(0 if verify_migrations(database_url) else 1)
