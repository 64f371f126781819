#!/usr/bin/env python3
"""
Command line entry point.

Usage:
    habit-backend serve [--host HOST] [--port PORT]
    habit-backend migrate up
    habit-backend migrate down [N]
    habit-backend migrate create NAME
    habit-backend migrate collections
    habit-backend migrate history-sync

Environment variables are read from .env automatically (see app/config.py).
"""
import argparse
import sys

from app import database
from app.config import HOST, PORT, LOG_LEVEL, logger
from app.migrations import MigrationError
from app.migrations.runner import MigrationRunner, create_collections_snapshot, create_migration_file


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("app.main:app", host=args.host, port=args.port, log_level=LOG_LEVEL.lower())
    return 0


def _connect():
    if not database.initialize_db():
        print("Error: could not connect to MongoDB, check MONGO_URI", file=sys.stderr)
        return None
    return database.db


def cmd_migrate(args) -> int:
    if args.action == "create":
        if not args.arg:
            print("Error: missing migration name", file=sys.stderr)
            return 2
        path = create_migration_file(args.arg)
        print(f"Created {path}")
        return 0

    db = _connect()
    if db is None:
        return 1
    try:
        if args.action == "collections":
            path = create_collections_snapshot(db)
            print(f"Created {path}")
            return 0

        runner = MigrationRunner(db)
        if args.action == "up":
            applied = runner.up()
            for name in applied:
                print(f"Applied {name}")
            if not applied:
                print("No new migrations to apply.")
        elif args.action == "down":
            count = int(args.arg) if args.arg else 1
            for name in runner.down(count):
                print(f"Reverted {name}")
        elif args.action == "history-sync":
            removed = runner.history_sync()
            print(f"Removed {len(removed)} orphaned history entries.")
        return 0
    finally:
        database.close_db()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="habit-backend",
        description="Habit tracker backend: HTTP server and collection migrations.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Start the HTTP server")
    p_serve.add_argument("--host", default=HOST)
    p_serve.add_argument("--port", type=int, default=PORT)
    p_serve.set_defaults(func=cmd_serve)

    p_migrate = sub.add_parser("migrate", help="Manage collection migrations")
    p_migrate.add_argument("action", choices=["up", "down", "create", "collections", "history-sync"])
    p_migrate.add_argument("arg", nargs="?", help="Number of migrations to revert (down) or name (create)")
    p_migrate.set_defaults(func=cmd_migrate)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (MigrationError, ValueError) as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
