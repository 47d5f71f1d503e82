"""
Main entry point for the Fixture Mirror server.

Runs the FastAPI app using uvicorn with proper configuration.
"""

import argparse
import logging
import os

import uvicorn

from ..config import CONFIG_PATH_ENV_VAR, ConfigManager


def main():
    """Main entry point for the Fixture Mirror server."""
    parser = argparse.ArgumentParser(description="Fixture Mirror Server")
    parser.add_argument(
        "--config", type=str, default=None, help="Path to config.json"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="Port to run server on (default: 8090)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind server to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # The app factory runs in the uvicorn process and reads its config from here
    if args.config:
        os.environ[CONFIG_PATH_ENV_VAR] = os.path.abspath(args.config)

    config = ConfigManager().load()
    host = args.host or config.server.host
    port = args.port or config.server.port

    print(f"Starting Fixture Mirror on {host}:{port}")
    print(f"Mirror root: {config.mirror_root}")
    print(f"Documentation available at: http://{host}:{port}/docs")
    print("Press Ctrl+C to stop the server")

    uvicorn.run(
        "fixture_mirror.server.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=args.reload,
        access_log=True,
    )


if __name__ == "__main__":
    main()
