"""Command-line entry point: run the website backend under uvicorn.

Usage:
  python -m school_backend.run_server [--host HOST] [--port PORT] [--reload]

uvicorn handles SIGTERM/SIGINT gracefully: it stops accepting connections,
waits for in-flight requests, then runs the app's shutdown.
"""
from __future__ import annotations

import argparse
import os

import uvicorn

from school_backend.config import Settings
from school_backend.logging_config import setup_logging


def main(argv=None) -> int:
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Serve the school website and its API")
    parser.add_argument("--host", default=settings.host, help="Interface to bind (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on (default: PORT or 3000)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    args = parser.parse_args(argv)

    # The app reads its settings on import; keep them in line with the CLI
    os.environ["HOST"] = args.host
    os.environ["PORT"] = str(args.port)

    setup_logging()
    uvicorn.run(
        "school_backend.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
