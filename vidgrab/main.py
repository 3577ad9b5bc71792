"""
Unified entry point for vidgrab.
Starts the retention sweeper and the web server in a single process.
"""

import argparse
import signal
import sys

from .artifact_store import ArtifactStore
from .config import ConfigError, load_config, resolve_download_dir, validate_config
from .retention import RetentionSweeper
from .utils import setup_logger
from .web_server import DownloadServer


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="vidgrab download server")
    parser.add_argument("--config", default="config.json", help="Path to config file")
    parser.add_argument("--host", help="Host address (overrides config)")
    parser.add_argument("--port", type=int, help="Port number (overrides config)")
    parser.add_argument(
        "--no-sweeper",
        action="store_true",
        help="Do not delete expired downloads in the background",
    )
    return parser


def main(argv=None):
    """Main entry point - starts all services"""
    args = build_arg_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"  Config error: {e}", file=sys.stderr)
        sys.exit(1)

    config_errors = validate_config(config)
    if config_errors:
        for err in config_errors:
            print(f"  Config error: {err}", file=sys.stderr)
        sys.exit(1)

    debug_mode = config.get("logging", {}).get("debug", False)
    logger = setup_logger("main", "main.log", debug=debug_mode)
    logger.info("vidgrab starting")

    sweeper = None
    if not args.no_sweeper:
        sweeper = RetentionSweeper.from_config(ArtifactStore(resolve_download_dir(config)), config)
        sweeper.start()
    else:
        logger.info("Retention sweeper disabled")

    server = DownloadServer(config=config, sweeper=sweeper)

    def shutdown(signum, frame):
        logger.info("Shutdown signal received")
        if sweeper is not None:
            sweeper.stop()
        print("\n Shutting down...")
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    server.run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
