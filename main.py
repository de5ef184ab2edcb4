#!/usr/bin/env python3
"""Entry point for the limit order keeper service.

This module provides the main entry point for the keeper that watches new
blocks and executes eligible limit orders on behalf of their holders.
"""

import argparse
import asyncio
import logging
import os
import sys

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from limit_keeper.config import KeeperConfig
from limit_keeper.errors import QueryError, ReconnectExhaustedError, SigningError
from limit_keeper.keeper import KeeperLoop


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Limit Order Keeper - execute eligible limit orders as blocks arrive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  RPC_ENDPOINT           - Websocket URL of the chain node
  CONTRACT_ADDRESS       - Limit order contract address
  SIGNING_KEY            - Private key of the keeper account
  GAS_LIMIT              - Gas ceiling per transaction (default: 5300000)
  CHECK_DATA             - Hex argument for checkUpkeep (default: 0x3078)
  REQUEST_TIMEOUT        - RPC request timeout (default: 30)
  RECONNECT_BASE_DELAY   - First reconnect delay (default: 1)
  RECONNECT_MAX_DELAY    - Reconnect delay ceiling (default: 60)
  MAX_RECONNECT_ATTEMPTS - Give up after this many failed dials (default: never)
  FATAL_ON_QUERY_ERROR   - Exit on checkUpkeep failure (default: false)
  DEDUP_ENABLED          - Suppress duplicate submissions (default: true)
  POST_SUBMIT_COOLDOWN   - Pause after a submission (default: 0)
  LOG_LEVEL              - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file (default: .env in the working directory)"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    """Main entry point for the limit order keeper.

    Parses startup arguments, loads configuration from environment,
    and runs the keeper until interrupted or a fatal error occurs.

    Raises:
        SystemExit: On configuration or fatal runtime errors
    """
    args: argparse.Namespace = parse_args(argv)

    setup_logging(args.log_level)

    logger.info("=== Limit Order Keeper Starting ===")
    logger.info("Loading configuration from environment...")

    try:
        config: KeeperConfig = KeeperConfig.from_env(env_file=args.env_file)
        logger.info("Configuration loaded successfully")

        keeper: KeeperLoop = KeeperLoop.from_config(config)
        await keeper.run()

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - RPC_ENDPOINT: Websocket URL of the chain node")
        logger.error("  - CONTRACT_ADDRESS: Limit order contract address")
        logger.error("  - SIGNING_KEY: Private key of the keeper account")
        sys.exit(1)

    except SigningError as e:
        logger.error(f"Signing Error: {e}")
        logger.error("The signing key or chain configuration is invalid, stopping")
        sys.exit(1)

    except (ReconnectExhaustedError, QueryError) as e:
        logger.error(f"Fatal Error: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down gracefully...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        # Run the main async function
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
