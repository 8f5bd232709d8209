"""Run the Link Weaver HTTP service (FastAPI + uvicorn)."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import uvicorn

# Ensure project root is on sys.path when invoked as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from link_weaver.config import CONFIG


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the Link Weaver suggestion service")
    parser.add_argument("--host", default=None, help=f"Host to bind (default: WEAVER_WEB_HOST or {CONFIG.web.host})")
    parser.add_argument("--port", type=int, default=None, help=f"Port to bind (default: WEAVER_WEB_PORT or {CONFIG.web.port})")
    parser.add_argument("--reload", action="store_true", help="Enable autoreload (dev only)")
    args = parser.parse_args(argv)

    uvicorn.run(
        "link_weaver.web.app:app",
        host=args.host or CONFIG.web.host,
        port=args.port or CONFIG.web.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
