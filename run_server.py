#!/usr/bin/env python
"""
Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py

    Or with Gunicorn:
    gunicorn dashboard_analytics.main:app -c gunicorn.conf.py
"""

import argparse
import os
import subprocess

import uvicorn

from dashboard_analytics.config import get_settings

APP = "dashboard_analytics.main:app"


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    uvicorn.run(
        APP,
        host="127.0.0.1",
        port=port,
        reload=True,
        reload_dirs=["dashboard_analytics"],
        log_level="debug",
    )


def run_prod_server(host: str, port: int):
    """Run production server with Uvicorn directly."""
    uvicorn.run(
        APP,
        host=host,
        port=port,
        workers=int(os.getenv("WORKERS", 4)),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


def run_gunicorn():
    """Run with Gunicorn and Uvicorn workers."""
    subprocess.run(["gunicorn", APP, "-c", "gunicorn.conf.py"], check=True)


if __name__ == "__main__":
    settings = get_settings()

    parser = argparse.ArgumentParser(description="E-Commerce Dashboard Analytics API Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--gunicorn", action="store_true", help="Run with Gunicorn")
    parser.add_argument(
        "--port",
        type=int,
        default=settings.api_port,
        help=f"Port to run on (default: {settings.api_port})",
    )
    args = parser.parse_args()

    if args.dev:
        run_dev_server(args.port)
    elif args.gunicorn:
        os.environ["BIND"] = f"{settings.api_host}:{args.port}"
        run_gunicorn()
    else:
        run_prod_server(settings.api_host, args.port)
