"""
civicvoice.__main__ — Entry point for ``python -m civicvoice``
===============================================================

Commands::

    python -m civicvoice serve [--port 8000]
    python -m civicvoice promote-admin someone@example.com
    python -m civicvoice purge-sessions

``promote-admin`` is how the first administrator is created: it approves the
account and sets ``is_admin``.  ``purge-sessions`` deletes expired sessions
and is meant for a cron job; request handling never depends on it.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from civicvoice.database.engine import create_db_engine, init_db
from civicvoice.database.store import KVStore
from civicvoice.engine.sessions import SessionManager
from civicvoice.services.repository import Repository

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("civicvoice")


def _store() -> KVStore:
    engine = create_db_engine()
    init_db(engine)
    return KVStore(engine)


def promote_admin(store: KVStore, email: str) -> int:
    repo = Repository(store)
    user = repo.get_user_by_email(email)
    if user is None:
        logger.error("No account with email %s", email)
        return 1
    repo.update_user(user.id, is_admin=True, is_approved=True, is_blocked=False)
    logger.info("%s is now an administrator", email)
    return 0


def purge_sessions(store: KVStore) -> int:
    removed = SessionManager(store).purge_expired()
    logger.info("Removed %d expired sessions", removed)
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(prog="civicvoice")
    sub = parser.add_subparsers(dest="command", required=True)
    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    promote = sub.add_parser("promote-admin", help="Grant admin rights to an account")
    promote.add_argument("email")
    sub.add_parser("purge-sessions", help="Delete expired sessions")
    args = parser.parse_args(argv)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("civicvoice.api.main:app", host=args.host, port=args.port)
        return 0
    if args.command == "promote-admin":
        return promote_admin(_store(), args.email)
    return purge_sessions(_store())


if __name__ == "__main__":
    sys.exit(main())
