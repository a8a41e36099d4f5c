#!/usr/bin/env python
"""
Run the iGarage360 API server.

Usage:
    uv run python run_api.py
    uv run python run_api.py --reload  # Development mode
    uv run python run_api.py --log-level debug  # Verbose server logs
"""

import argparse
import uvicorn

from shared.config import get_settings


def main():
    parser = argparse.ArgumentParser(description="Run iGarage360 API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Log level (defaults to debug when DEBUG is set)",
    )
    args = parser.parse_args()

    settings = get_settings()

    uvicorn.run(
        "api:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload or settings.reload,
        log_level=args.log_level or ("debug" if settings.debug else "info"),
    )


if __name__ == "__main__":
    main()
