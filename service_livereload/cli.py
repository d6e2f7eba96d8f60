#!/usr/bin/env python3
"""
Command line entry point for the live-reload server.

    livereload-serve [DIRECTORY] [PORT]

Serves DIRECTORY (default ``.``) on PORT (default 3000). Any request to the
reload endpoint makes every open page reload.
"""

import argparse
import sys
from typing import List, Optional

from shared.config import get_config
from shared.logging import configure_logging, get_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="livereload-serve",
        description="Serve a directory and reload browsers on demand."
    )
    parser.add_argument("directory", nargs="?", default=".", help="Directory to serve")
    parser.add_argument("port", nargs="?", type=int, default=3000, help="Port to listen on")
    parser.add_argument("--host", default=None, help="Bind address (default from LIVERELOAD_HOST or 0.0.0.0)")
    parser.add_argument("--log-level", default=None, help="Log level (default from LIVERELOAD_LOG_LEVEL or info)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.log_level:
        overrides["log_level"] = args.log_level
    config = get_config(root_dir=args.directory, port=args.port, **overrides)

    configure_logging(config.service_name, config.log_level)
    logger = get_logger("livereload.cli")

    from service_livereload.app.main import LiveReloadService

    try:
        service = LiveReloadService(config)
    except RuntimeError as exc:
        # StaticFiles refuses a missing directory
        logger.critical("Cannot start live-reload server", root_dir=config.root_dir, error=str(exc))
        return 1

    print(f"starting on http://localhost:{config.port}")
    print(f"send requests to http://localhost:{config.port}{config.reload_path} to trigger reloads")

    service.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
