"""
Run script for starting the WhatsApp session bridge server.

This script configures and starts the FastAPI server with the websocket
settings of the centralized configuration. The WhatsApp client is started on
``POST /initialize``, or at startup with ``--initialize-on-start``.

Usage:
    python run_server.py [--port PORT] [--host HOST] [--log-level LEVEL]
                         [--initialize-on-start] [--show-config]

Environment Variables:
    PORT=port                        - Server port (default: 5000)
    HOST=host                        - Server host (default: 0.0.0.0)
    LOG_LEVEL=level                  - Logging level (default: INFO)
    WHATSAPP_AUTH_DIR=path           - Browser profile directory (default: .wwebjs_auth/session)
    WHATSAPP_HEADLESS=true|false     - Run the browser headless (default: true)
    WHATSAPP_AUTO_INITIALIZE=true    - Start the WhatsApp client at startup
    STATIC_DIR=path                  - Serve a web UI from this directory

Examples:
    # Run with defaults
    python run_server.py

    # Start the WhatsApp client immediately, on another port
    python run_server.py --initialize-on-start --port 8000
"""

import argparse
import os
import socket
import sys

import uvicorn

from wabridge.config import get_config, print_configuration_summary
from wabridge.config.env_loader import load_env_file
from wabridge.config.logging_config import configure_logging

# Load environment variables first
load_env_file()

# Get centralized configuration
config = get_config()

# Configure logging
logger = configure_logging("run")


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the WhatsApp session bridge server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.server.port,
        help=f"Port to run the server on (default: {config.server.port} from config)",
    )
    parser.add_argument(
        "--host",
        default=config.server.host,
        help=f"Host to bind the server to (default: {config.server.host} from config)",
    )
    parser.add_argument(
        "--log-level",
        default=config.logging.level.value,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=f"Logging level (default: {config.logging.level.value} from config)",
    )
    parser.add_argument(
        "--initialize-on-start",
        action="store_true",
        help="Start the WhatsApp client when the server starts",
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Print the configuration summary and exit",
    )
    return parser.parse_args()


def port_in_use(host: str, port: int) -> bool:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        return sock.connect_ex((host, port)) == 0
    finally:
        sock.close()


def main():
    """Main entry point for starting the server."""
    args = parse_args()

    if args.show_config:
        print_configuration_summary()
        return

    if args.initialize_on_start:
        # The reloader starts a fresh process that reads the environment again.
        os.environ["WHATSAPP_AUTO_INITIALIZE"] = "true"
        config.whatsapp.auto_initialize = True

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        print("\nError: invalid configuration")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    logger.info("=== Server Configuration ===")
    logger.info(f"Host: {args.host}")
    logger.info(f"Port: {args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"Environment: {config.server.environment.value}")
    logger.info(f"Auth directory: {config.whatsapp.auth_dir}")
    logger.info(f"Headless: {config.whatsapp.headless}")
    logger.info(f"Push channel: {config.broadcast.ws_path}")
    logger.info(f"Initialize on start: {config.whatsapp.auto_initialize}")
    logger.info("=========================")

    try:
        if port_in_use(args.host, args.port):
            logger.error(f"Port {args.port} is already in use")
            print(f"\nError: Port {args.port} is already in use")
            print("Please choose a different port or stop the process using that port")
            sys.exit(1)

        uvicorn_config = uvicorn.Config(
            "wabridge.main:app",
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
            http="h11" if config.server.http_protocol == "h11" else "auto",
            access_log=config.server.access_log,
            reload=config.server.reload,
            ws_ping_interval=config.server.ws_ping_interval,
            ws_ping_timeout=config.server.ws_ping_timeout,
            loop="asyncio",
            timeout_keep_alive=config.server.timeout_keep_alive,
        )

        print(f"\n🚀 Starting WhatsApp session bridge")
        print(f"   Server URL: http://{args.host}:{args.port}")
        print(f"   Push channel: ws://{args.host}:{args.port}{config.broadcast.ws_path}")
        print(f"   Log level: {args.log_level}")

        logger.info("Starting server with uvicorn...")
        server = uvicorn.Server(uvicorn_config)
        server.run()

    except Exception as e:
        logger.error(f"Failed to start server: {str(e)}")
        print(f"\nError: Failed to start server: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
