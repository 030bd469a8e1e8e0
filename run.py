#!/usr/bin/env python3
"""Run the Every Ride Challenge tracker.

Usage:
    python run.py [--host HOST] [--port PORT] [--reload] [--storage BACKEND]

Examples:
    python run.py                      # Run with settings from the environment
    python run.py --port 8080          # Run on port 8080
    python run.py --storage memory     # Keep state in memory only
    python run.py --reload             # Run with auto-reload for development
"""

import argparse
import os
import sys

from everyride.config import get_settings


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Run the Every Ride Challenge tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py                      Run with settings from the environment
  python run.py --host 0.0.0.0       Listen on all interfaces
  python run.py --storage redis      Store slots in Redis (EVERYRIDE_REDIS_URL)
  python run.py --reload             Enable auto-reload (development)
        """,
    )

    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Host to bind to (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to bind to (default: {settings.port})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes (development mode)",
    )
    parser.add_argument(
        "--storage",
        choices=["memory", "file", "redis"],
        default=None,
        help=f"Storage backend (default: {settings.storage_backend})",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default=settings.log_level.lower(),
        help="Logging level",
    )

    args = parser.parse_args()

    if args.storage:
        # Settings are read again inside the app factory.
        os.environ["EVERYRIDE_STORAGE_BACKEND"] = args.storage
    os.environ["EVERYRIDE_LOG_LEVEL"] = args.log_level.upper()
    get_settings.cache_clear()

    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is not installed.")
        print("Install it with: pip install uvicorn[standard]")
        sys.exit(1)

    print(f"""
  Every Ride Challenge tracker
  Starting server at http://{args.host}:{args.port}
  API Docs:   http://{args.host}:{args.port}/docs
    """)

    # The engine is per-process state, so there is always one worker.
    uvicorn.run(
        "everyride.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
