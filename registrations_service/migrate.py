#!/usr/bin/env python3
"""
Migration management script for Registrations Service.
Thin CLI over Alembic's command API.
"""

import sys
import argparse
from pathlib import Path

from alembic import command
from alembic.config import Config

SERVICE_DIR = Path(__file__).parent

# Add the app directory to the Python path
sys.path.append(str(SERVICE_DIR))


def alembic_config() -> Config:
    """Alembic config rooted at this service."""
    cfg = Config(str(SERVICE_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(SERVICE_DIR / "migrations"))
    return cfg


def run_step(description, step, *args, **kwargs):
    """Run an Alembic command and report the outcome."""
    print(f"🔄 {description}...")
    try:
        step(alembic_config(), *args, **kwargs)
        print(f"✅ {description} completed successfully")
        return True
    except Exception as e:
        print(f"❌ {description} failed: {e}")
        return False


def main():
    parser = argparse.ArgumentParser(description="Registrations Service Migration Manager")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_parser = subparsers.add_parser("create", help="Create a new migration")
    create_parser.add_argument("message", help="Migration message")

    upgrade_parser = subparsers.add_parser("upgrade", help="Apply migrations")
    upgrade_parser.add_argument("--revision", default="head", help="Target revision (default: head)")

    downgrade_parser = subparsers.add_parser("downgrade", help="Downgrade migrations")
    downgrade_parser.add_argument("revision", help="Target revision")

    stamp_parser = subparsers.add_parser("stamp", help="Mark the database as being at a revision")
    stamp_parser.add_argument("--revision", default="head", help="Revision to stamp (default: head)")

    subparsers.add_parser("current", help="Show current database revision")
    subparsers.add_parser("history", help="Show migration history")

    args = parser.parse_args()

    if args.command == "create":
        ok = run_step(f"Creating migration: {args.message}", command.revision, message=args.message, autogenerate=True)
    elif args.command == "upgrade":
        ok = run_step(f"Upgrading database to {args.revision}", command.upgrade, args.revision)
    elif args.command == "downgrade":
        ok = run_step(f"Downgrading database to {args.revision}", command.downgrade, args.revision)
    elif args.command == "stamp":
        ok = run_step(f"Stamping database at {args.revision}", command.stamp, args.revision)
    elif args.command == "current":
        ok = run_step("Showing current database revision", command.current)
    elif args.command == "history":
        ok = run_step("Showing migration history", command.history)
    else:
        parser.print_help()
        return

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
