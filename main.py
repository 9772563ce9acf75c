#!/usr/bin/env python3
"""
Biblio -- multi-tenant library catalog API server.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  TOKEN_SECRET      Bearer token signing key (>= 32 chars, required unless DEBUG=true)
  SESSION_SECRET    Session cookie signing key (>= 32 chars, required unless DEBUG=true)
  TOKEN_EXPIRES_IN  Token lifetime, e.g. 1d, 12h, 30m (default 1d)
  DATABASE_URL      SQLAlchemy URL (default: sqlite file named after DATABASE_NAME)
  PORT              Listen port (default 3000)
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="biblio",
        description="Run the Biblio library catalog API.",
    )
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Listen port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    print(f"  Open http://{args.host}:{args.port}/health to see a response.")
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
