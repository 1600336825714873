#!/usr/bin/env python
"""
Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py

    Or with Gunicorn:
    gunicorn webhub.main:app -c gunicorn.conf.py
"""

import argparse
import os
import subprocess

import uvicorn

from webhub.config import get_settings

settings = get_settings()


def run_dev_server(port: int) -> None:
    """Run development server with auto-reload."""
    uvicorn.run(
        "webhub.main:app",
        host=settings.api_host,
        port=port,
        reload=True,
        reload_dirs=["webhub"],
        log_level="debug",
        access_log=True,
    )


def run_prod_server(port: int) -> None:
    """Run production server with Uvicorn directly."""
    uvicorn.run(
        "webhub.main:app",
        host=settings.api_host,
        port=port,
        workers=settings.api_workers,
        log_level=settings.monitoring.log_level.lower(),
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
        date_header=True,
    )


def run_gunicorn() -> None:
    """Run with Gunicorn (recommended for production)."""
    subprocess.run(["gunicorn", "webhub.main:app", "-c", "gunicorn.conf.py"], check=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="Nexus Web Hub API Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--gunicorn", action="store_true", help="Run with Gunicorn (production)")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Port to run on")

    args = parser.parse_args()
    os.environ["BIND"] = f"{settings.api_host}:{args.port}"

    if args.dev:
        run_dev_server(args.port)
    elif args.gunicorn:
        run_gunicorn()
    else:
        run_prod_server(args.port)


if __name__ == "__main__":
    main()
