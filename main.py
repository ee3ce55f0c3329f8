#!/usr/bin/env python3
"""
SessionAuth -- session-based authentication service.

Usage:
  python main.py serve
  python main.py serve --port 8000 --reload
  python main.py init-db

Environment variables (see core/config.py for the full list):
  DATABASE_URL   SQLAlchemy URL for the users database (default sqlite:///auth.sqlite)
  SECRET_KEY     Session cookie signing key; required when ENVIRONMENT=production
  PORT           Default port for `serve` (default 4000)
"""

import argparse
import logging

from core.config import get_settings

logger = logging.getLogger("sessionauth.cli")


def _init_db() -> None:
    """Create the users and sessions schema, then exit."""
    from auth.sessions import SessionStore
    from auth.store import UserStore
    from core.database import create_db_engine

    settings = get_settings()
    engine = create_db_engine(settings.database_url)
    UserStore(engine)
    session_engine = engine
    if settings.session_database_url and settings.session_database_url != settings.database_url:
        session_engine = create_db_engine(settings.session_database_url)
    SessionStore(session_engine, max_age_seconds=settings.session_max_age_seconds)
    if session_engine is not engine:
        session_engine.dispose()
    engine.dispose()
    logger.info("Database initialized")


def _serve(host: str, port: int, reload: bool) -> None:
    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=reload)


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="SessionAuth -- register, login, current user, logout over cookie sessions.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    serve.add_argument("--port", type=int, default=settings.port, help=f"Port (default: {settings.port})")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development)")

    sub.add_parser("init-db", help="Create the database schema and exit")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "init-db":
        _init_db()
    else:
        _serve(args.host, args.port, args.reload)


if __name__ == "__main__":
    main()
