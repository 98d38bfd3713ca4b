#!/usr/bin/env python3
"""
API Server Startup Script
Runs the VidLock API under uvicorn.

Usage:
    python scripts/run_server.py                 # HOST/PORT from environment (default 0.0.0.0:4000)
    python scripts/run_server.py --port 8080
    python scripts/run_server.py --reload        # Auto-reload for local development
"""

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import uvicorn

from vidlock.core.config import settings
from vidlock.main import configure_logging


logger = logging.getLogger("vidlock.server")


def main():
    parser = argparse.ArgumentParser(description="Run the VidLock API server")
    parser.add_argument("--host", default=settings.HOST, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Listen port")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    logger.info(f"Open http://localhost:{args.port}")
    uvicorn.run(
        "vidlock.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
