import argparse
import logging
import os
import sys
from pathlib import Path
from uuid import UUID

import uvicorn

from patchouli.adapters.sqlite.migrator import SQLiteMigrator
from patchouli.adapters.sqlite.repos import SQLitePostStore, SQLiteUserStore
from patchouli.api.deps import Settings
from patchouli.domain.entities import User
from patchouli.rules.loader import load_rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    applied = SQLiteMigrator(settings.db_path).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_upsert_profile(settings: Settings, args: argparse.Namespace) -> None:
    store = SQLiteUserStore(settings.db_path)
    user = store.save_user(User(id=UUID(args.user_id), name=args.name, avatar=args.avatar))
    print(f"Profile {user.id} ({user.name}) role={user.role} banned={user.is_banned}")


def handle_promote(settings: Settings, args: argparse.Namespace) -> None:
    store = SQLiteUserStore(settings.db_path)
    role = "user" if args.demote else "admin"
    user = store.set_role(UUID(args.user_id), role)
    if user is None:
        logger.error("User %s not found. Mirror the profile first.", args.user_id)
        sys.exit(1)
    print(f"{user.name} is now {user.role}.")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    # The app builds its own Settings from the environment.
    os.environ["PATCHOULI_RULES_PATH"] = str(settings.rules_path)
    uvicorn.run("patchouli.api.main:app", host=args.host, port=args.port)


def handle_queue(settings: Settings, args: argparse.Namespace) -> None:
    rules = load_rules(settings.rules_path)
    store = SQLitePostStore(settings.db_path, timeout_seconds=rules.store.timeout_seconds)
    pending = store.list_posts(status="pending", limit=args.limit)
    if not pending:
        print("Review queue is empty.")
        return
    for post in pending:
        print(f"{post.id}  {post.created_at:%Y-%m-%d %H:%M}  {post.title}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Patchouli knowledge base CLI")
    parser.add_argument("--rules", help="Path to rules.yaml (defaults to ./rules.yaml)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # upsert-profile
    profile_parser = subparsers.add_parser(
        "upsert-profile", help="Mirror an identity provider profile into the store"
    )
    profile_parser.add_argument("user_id", help="User id issued by the identity provider")
    profile_parser.add_argument("name", help="Display name")
    profile_parser.add_argument("--avatar", default="", help="Avatar URL")

    # promote
    promote_parser = subparsers.add_parser("promote", help="Grant the admin role")
    promote_parser.add_argument("user_id", help="User id to promote")
    promote_parser.add_argument("--demote", action="store_true", help="Revoke admin instead")

    # queue
    queue_parser = subparsers.add_parser("queue", help="Print posts awaiting review")
    queue_parser.add_argument("--limit", type=int, default=50)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    settings = Settings()
    if args.rules:
        settings.rules_path = Path(args.rules)

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "upsert-profile":
        handle_upsert_profile(settings, args)
    elif args.command == "promote":
        handle_promote(settings, args)
    elif args.command == "queue":
        handle_queue(settings, args)
    elif args.command == "serve":
        handle_serve(settings, args)


if __name__ == "__main__":
    main()
