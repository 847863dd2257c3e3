#!/usr/bin/env python3
"""
VidTube -- accounts, sessions and channel subscriptions API server.

Usage:
  python main.py
  python main.py --port 9000
  python main.py --host 127.0.0.1 --reload

Environment variables (see core/config.py for the full list):
  ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET   required unless DEBUG=true
  DATABASE_URL                                SQLAlchemy URL (default: SQLite file)
  PORT                                        listen port (default: 8000)
  CLOUDINARY_CLOUD_NAME / _API_KEY / _API_SECRET  media host credentials
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the VidTube API server.")
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    # The database is connected in the app lifespan, before the port accepts
    # requests; a connection failure aborts startup.
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
