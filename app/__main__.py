"""Entry point for the gateway.

Usage:
    python -m app                    # serve on GATEWAY_HOST:GATEWAY_PORT
    python -m app --port 9000        # override the port
"""

import argparse

import uvicorn

from app.config import settings


def main():
    parser = argparse.ArgumentParser(
        prog="app",
        description="Document Job Gateway - accepts document jobs and tracks their status",
    )
    parser.add_argument("--host", default=settings.gateway_host, help=f"Host to bind to (default: {settings.gateway_host})")
    parser.add_argument("--port", type=int, default=settings.gateway_port, help=f"Port to bind to (default: {settings.gateway_port})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
