"""Main entry point for the UniPager control client."""

import argparse
import asyncio
import logging
import os
import signal
import sys

from .client import ControlClient
from .config import ClientConfig, load_config
from .panel import OperatorPanel

log_level = os.environ.get("UNIPAGER_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="UniPager control client")
    parser.add_argument("--host", help="UniPager host (overrides server_host)")
    parser.add_argument("--port", type=int, help="UniPager control port (overrides server_port)")
    parser.add_argument("--no-panel", action="store_true", help="Do not start the operator panel")
    return parser.parse_args(argv)


async def main_async(config: dict, *, panel_enabled: bool = True) -> None:
    """Main async entry point.

    Args:
        config: Loaded configuration dictionary
        panel_enabled: Whether to serve the operator panel
    """
    client = ControlClient(ClientConfig.from_dict(config))

    panel = None
    if panel_enabled:
        port = int(os.environ.get("UNIPAGER_PANEL_PORT", config.get("panel_port", 8056)))
        host = config.get("panel_host", "localhost")
        panel = OperatorPanel(client, host=host, port=port, config=config)
        await panel.start()

    client.start()

    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    logger.info("UniPager control client started. Press Ctrl+C to stop.")
    await stop_event.wait()

    logger.info("Shutting down...")
    if panel is not None:
        await panel.stop()
    await client.stop()


def main():
    """Main entry point."""
    args = parse_args()
    try:
        config = load_config()
        if args.host:
            config["server_host"] = args.host
        if args.port:
            config["server_port"] = args.port
        panel_enabled = bool(config.get("panel_enabled", True)) and not args.no_panel

        asyncio.run(main_async(config, panel_enabled=panel_enabled))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
