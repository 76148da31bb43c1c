#!/usr/bin/env python3
"""
MeuBonsai.App -- identity administration CLI.

Usage:
  python main.py pending
  python main.py migrate
  python main.py grant <username> <feature> [<feature> ...]

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the identity database (default: sqlite bonsai.db
                 at the project root). See core/config.py for every setting.
"""

import argparse
import sys
from typing import Optional

from auth import users
from auth.features import AVAILABLE_FEATURES
from auth.store import IdentityStore
from core.config import get_settings
from core.database import create_db_engine
from core.errors import AppError
from core.migrator import list_pending, run_pending


def _cmd_pending(engine) -> int:
    pending = list_pending(engine)
    if not pending:
        print("  No pending migrations.")
        return 0
    for migration in pending:
        print(f"  {migration.name}  ({migration.path})")
    print(f"\n  {len(pending)} pending migration(s).")
    return 0


def _cmd_migrate(engine) -> int:
    applied = run_pending(engine)
    if not applied:
        print("  Database is up to date.")
        return 0
    for migration in applied:
        print(f"  Applied {migration.name}")
    return 0


def _cmd_grant(engine, username: str, features: list[str]) -> int:
    store = IdentityStore(engine)
    user = users.find_by_username(store, username)
    updated = users.add_features(store, user.id, features)
    print(f"  {updated.username}: {', '.join(updated.features)}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="bonsai-admin",
        description="Administer the MeuBonsai.App identity database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py pending
  python main.py migrate
  python main.py grant alice read:migration create:migration
  DATABASE_URL=postgresql://bonsai@db/bonsai python main.py migrate
        """,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.add_parser("pending", help="List migrations that have not been applied yet")
    subparsers.add_parser("migrate", help="Apply every pending migration")
    grant = subparsers.add_parser("grant", help="Add features to a user")
    grant.add_argument("username", help="Username (case-insensitive)")
    grant.add_argument(
        "features",
        nargs="+",
        metavar="FEATURE",
        help="One or more of: " + ", ".join(sorted(AVAILABLE_FEATURES)),
    )
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    engine = create_db_engine(get_settings().database_url)
    try:
        if args.command == "pending":
            return _cmd_pending(engine)
        if args.command == "migrate":
            return _cmd_migrate(engine)
        return _cmd_grant(engine, args.username, args.features)
    except AppError as exc:
        print(f"  [!] {exc.message} {exc.action}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
