"""
Command line entry point for the imessage-tools MCP server.

    python -m imessage_tools --transport stdio
    imessage-tools --port 3000 --log-level DEBUG
"""

import argparse
import sys
from typing import List, Optional

from pydantic import ValidationError

from imessage_tools.config import VALID_LOG_LEVELS, VALID_TRANSPORTS, ServerConfig, load_config
from imessage_tools.logger_config import get_logger, setup_logging
from imessage_tools.utils.load_env import load_env

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imessage-tools",
        description="MCP server for the macOS Messages database and Contacts",
    )
    parser.add_argument("--transport", choices=VALID_TRANSPORTS, help="MCP transport (default: http)")
    parser.add_argument("--host", help="Host for the HTTP transport (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port for the HTTP transport (default: 3000)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=VALID_LOG_LEVELS,
        help="Log level (default: INFO)",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> ServerConfig:
    """Environment configuration with command line flags taking precedence"""
    config = load_config()
    overrides = {
        key: value
        for key, value in (
            ("transport", args.transport),
            ("host", args.host),
            ("port", args.port),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    if not overrides:
        return config
    return ServerConfig(**{**config.model_dump(), **overrides})


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_env()

    try:
        config = resolve_config(args)
    except (ValidationError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(
        log_level=config.log_level,
        log_dir=config.log_dir,
        file_output=config.log_to_file,
    )

    from imessage_tools.server.app import run_server

    try:
        run_server(config)
    except KeyboardInterrupt:
        logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
