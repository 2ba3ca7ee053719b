"""
task-api: run the Task Manager API server.

    task-api                 # host/port from HOST / PORT
    task-api --port 8080 --reload
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

import uvicorn

from .config import ConfigError, Settings


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="task-api", description="Task Manager API server")
    parser.add_argument("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default: $PORT or 3000)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        print(f"task-api: {exc}", file=sys.stderr)
        return 2

    uvicorn.run(
        "task_api.main:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
