#!/usr/bin/env python3
"""
Supabase Database Initialization Script
---------------------------------------

Prints schema.sql for manual execution in the Supabase SQL Editor, or runs
it through an `execute_sql` RPC function when one is installed.

Usage:
    python -m social_scheduler.db.init_db [--execute]
"""

import logging
import pathlib
import sys

from social_scheduler.core.config import get_settings
from social_scheduler.core.logging_config import setup_logging
from social_scheduler.utils.database import get_supabase_client

logger = logging.getLogger(__name__)

DB_DIR = pathlib.Path(__file__).parent
SCHEMA_FILE = DB_DIR / "schema.sql"


def read_schema() -> str:
    return SCHEMA_FILE.read_text(encoding="utf-8")


def print_schema_sql() -> None:
    print("\n===== DATABASE INITIALIZATION INSTRUCTIONS =====")
    print("Please execute the following SQL in the Supabase SQL Editor:\n")
    print(read_schema())
    print("\n===== END DATABASE INITIALIZATION INSTRUCTIONS =====")


def execute_schema() -> bool:
    """Run the schema through the execute_sql RPC; False if that is unavailable"""
    try:
        client = get_supabase_client(admin_access=True)
        client.rpc('execute_sql', {'sql': read_schema()}).execute()
    except Exception as e:
        logger.error(f"Failed to execute schema: {e}")
        return False
    logger.info("Schema applied")
    return True


if __name__ == "__main__":
    setup_logging(get_settings().LOG_LEVEL)
    if "--execute" in sys.argv:
        if not execute_schema():
            print_schema_sql()
            sys.exit(1)
    else:
        print_schema_sql()
