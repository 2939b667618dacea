"""Happy Vertical People Transporter: dev launcher. Starts the API server."""

import argparse
import os

import uvicorn

from happy_elevator.config import load_settings


def main():
    settings = load_settings()

    parser = argparse.ArgumentParser(description="Happy Vertical People Transporter dev launcher")
    parser.add_argument("--host", default=settings.host,
                        help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port,
                        help=f"Port (default: {settings.port})")
    parser.add_argument("--echo", action="store_true",
                        help="Use the offline echo generator instead of the LLM backend")
    parser.add_argument("--reload", action="store_true",
                        help="Restart the server on code changes")
    parser.add_argument("--log-level", default="info",
                        choices=["critical", "error", "warning", "info", "debug"])
    args = parser.parse_args()

    # backend.app builds its settings from the environment on import
    if args.echo:
        os.environ["LLM_PROVIDER_FORMAT"] = "echo"

    print(f"Starting backend on http://localhost:{args.port} ...")
    uvicorn.run(
        "backend.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
