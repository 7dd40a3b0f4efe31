"""DishLedger database management CLI.

Creates and drops the inventory schema (staff, audits, read models and the
outbox). Item ledgers live in the event store and need no tables.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_databases():
    """Create the inventory database schema."""
    from inventory.domain import inventory
    from inventory.utils.db import setup_db

    print("Initializing inventory domain...")
    inventory.init()
    print("Creating inventory database schema...")
    setup_db(inventory)
    print("Done.")


def drop_databases():
    """Drop the inventory database schema."""
    from inventory.domain import inventory
    from inventory.utils.db import drop_db

    print("Initializing inventory domain...")
    inventory.init()
    print("Dropping inventory database schema...")
    drop_db(inventory)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="DishLedger database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
