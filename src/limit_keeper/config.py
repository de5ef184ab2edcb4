#!/usr/bin/env python3
"""Configuration management for the limit order keeper.

This module provides type-safe configuration dataclasses with validation
for the keeper. Configuration is loaded from environment variables, optionally
seeded from a ``.env`` file, with sensible defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from dotenv import load_dotenv
from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 5_300_000
DEFAULT_CHECK_DATA = b"0x"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env(*names: str, default: str = "") -> str:
    """Return the first non-empty environment variable among ``names``."""
    for name in names:
        if value := os.environ.get(name):
            return value
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {name}: {raw!r}")


def _env_number(name: str, default: str, cast: type) -> int | float:
    raw = os.environ.get(name) or default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def redact_endpoint(url: str) -> str:
    """Keep scheme, host and port of a node URL and hide any path, query or credentials."""
    parsed = urlparse(url)
    if not parsed.hostname:
        return "[REDACTED]"
    netloc = parsed.hostname if parsed.port is None else f"{parsed.hostname}:{parsed.port}"
    hidden = parsed.username or parsed.password or parsed.path.strip("/") or parsed.query or parsed.fragment
    return f"{parsed.scheme}://{netloc}" + ("/[REDACTED]" if hidden else "")


def _parse_hex_bytes(value: str) -> bytes:
    """Decode a 0x-prefixed (or bare) hex string."""
    stripped = value.removeprefix("0x")
    try:
        return bytes.fromhex(stripped)
    except ValueError:
        raise ValueError(f"Invalid hex data: {value!r}") from None


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Connection target for the keeper.

    Attributes:
        rpc_endpoint: Websocket endpoint of the chain node (http(s) is converted)
        contract_address: Checksummed address of the limit order contract
    """

    rpc_endpoint: str
    contract_address: str

    def __post_init__(self) -> None:
        """Validate chain configuration."""
        if not self.rpc_endpoint:
            raise ValueError("RPC endpoint is required (RPC_ENDPOINT)")

        parsed = urlparse(self.rpc_endpoint)
        if parsed.scheme not in ('ws', 'wss', 'http', 'https'):
            raise ValueError(
                f"Invalid RPC endpoint scheme: {parsed.scheme}. "
                "Expected ws, wss, http, or https"
            )

        if not self.contract_address:
            raise ValueError("Contract address is required (CONTRACT_ADDRESS)")

        if not Web3.is_address(self.contract_address):
            raise ValueError(f"Invalid contract address: {self.contract_address}")

        checksummed = Web3.to_checksum_address(self.contract_address)
        if checksummed != self.contract_address:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'contract_address', checksummed)


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Transport and reconnect settings."""
    request_timeout: int = 30  # seconds per RPC request
    reconnect_base_delay: float = 1.0  # seconds before the first retry
    reconnect_max_delay: float = 60.0  # ceiling on the backoff delay
    max_reconnect_attempts: int | None = None  # None retries forever

    def __post_init__(self) -> None:
        """Validate connection configuration."""
        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.reconnect_base_delay <= 0:
            raise ValueError(
                f"Reconnect base delay must be positive, got {self.reconnect_base_delay}"
            )
        if self.reconnect_max_delay < self.reconnect_base_delay:
            raise ValueError(
                f"Reconnect max delay ({self.reconnect_max_delay}) must not be lower "
                f"than the base delay ({self.reconnect_base_delay})"
            )

        if self.max_reconnect_attempts is not None and self.max_reconnect_attempts <= 0:
            raise ValueError(
                f"Max reconnect attempts must be positive, got {self.max_reconnect_attempts}"
            )


@dataclass(frozen=True, slots=True)
class KeeperPolicy:
    """Behaviour switches for the keeper loop.

    Attributes:
        fatal_on_query_error: Terminate instead of skipping a failed checkUpkeep
        dedup_enabled: Suppress re-submission of already executed orders
        post_submit_cooldown: Seconds to pause after a successful submission
    """

    fatal_on_query_error: bool = False
    dedup_enabled: bool = True
    post_submit_cooldown: float = 0.0

    def __post_init__(self) -> None:
        if self.post_submit_cooldown < 0:
            raise ValueError(
                f"Post-submit cooldown must be non-negative, got {self.post_submit_cooldown}"
            )


@dataclass(frozen=True, slots=True)
class KeeperConfig:
    """Main configuration for the keeper.

    Attributes:
        chain: Node endpoint and contract address
        signing_key: Hex-encoded private key of the submitting account
        connection: Transport and reconnect settings
        policy: Keeper loop behaviour switches
        gas_limit: Fixed gas ceiling for every performUpkeep transaction
        check_data: Argument passed to checkUpkeep
    """

    chain: ChainConfig
    signing_key: str = field(repr=False)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    policy: KeeperPolicy = field(default_factory=KeeperPolicy)
    gas_limit: int = DEFAULT_GAS_LIMIT
    check_data: bytes = DEFAULT_CHECK_DATA

    def __post_init__(self) -> None:
        """Validate keeper configuration."""
        if not self.signing_key:
            raise ValueError("Signing key is required (SIGNING_KEY)")

        # Basic private key validation (should be 64 hex chars, optionally with 0x prefix)
        key = self.signing_key.removeprefix('0x')
        if len(key) != 64:
            raise ValueError(
                f"Invalid signing key length. Expected 64 hex characters, got {len(key)}"
            )

        try:
            int(key, 16)
        except ValueError:
            raise ValueError("Invalid signing key format. Must be hexadecimal") from None

        if self.gas_limit <= 21_000:
            raise ValueError(f"Gas limit too low (min 21000), got {self.gas_limit}")

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "KeeperConfig":
        """Load configuration from environment variables.

        Values from ``env_file`` (or ``.env`` in the working directory) are
        used only where the real environment does not set them.

        Args:
            env_file: Optional path to a dotenv file

        Returns:
            KeeperConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        load_dotenv(env_file, override=False)

        rpc_endpoint = _env("RPC_ENDPOINT", "WS_RPC")
        if not rpc_endpoint:
            raise ValueError(
                "RPC_ENDPOINT environment variable is required. "
                "This should be the websocket URL of the chain node."
            )

        contract_address = _env("CONTRACT_ADDRESS", "LIMIT_ADDRESS")
        if not contract_address:
            raise ValueError(
                "CONTRACT_ADDRESS environment variable is required. "
                "This should be the address of the limit order contract."
            )

        signing_key = _env("SIGNING_KEY", "PRIVATE_KEY")
        if not signing_key:
            raise ValueError(
                "SIGNING_KEY environment variable is required. "
                "This should be the hex private key of the keeper account."
            )

        chain_config = ChainConfig(
            rpc_endpoint=rpc_endpoint,
            contract_address=contract_address
        )

        max_attempts_raw = os.environ.get("MAX_RECONNECT_ATTEMPTS", "")
        connection_config = ConnectionConfig(
            request_timeout=int(_env_number("REQUEST_TIMEOUT", "30", int)),
            reconnect_base_delay=float(_env_number("RECONNECT_BASE_DELAY", "1", float)),
            reconnect_max_delay=float(_env_number("RECONNECT_MAX_DELAY", "60", float)),
            max_reconnect_attempts=(
                int(_env_number("MAX_RECONNECT_ATTEMPTS", "0", int))
                if max_attempts_raw else None
            ),
        )

        policy = KeeperPolicy(
            fatal_on_query_error=_env_bool("FATAL_ON_QUERY_ERROR", False),
            dedup_enabled=_env_bool("DEDUP_ENABLED", True),
            post_submit_cooldown=float(_env_number("POST_SUBMIT_COOLDOWN", "0", float)),
        )

        check_data_raw = os.environ.get("CHECK_DATA")
        check_data = _parse_hex_bytes(check_data_raw) if check_data_raw else DEFAULT_CHECK_DATA

        return cls(
            chain=chain_config,
            signing_key=signing_key,
            connection=connection_config,
            policy=policy,
            gas_limit=int(_env_number("GAS_LIMIT", str(DEFAULT_GAS_LIMIT), int)),
            check_data=check_data,
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Limit Keeper Configuration")
        logger.info("=" * 60)

        logger.info("Chain:")
        logger.info(f"  RPC Endpoint: {redact_endpoint(self.chain.rpc_endpoint)}")
        logger.info(f"  Contract: {self.chain.contract_address}")

        logger.info("Connection Settings:")
        logger.info(f"  Request Timeout: {self.connection.request_timeout} seconds")
        logger.info(
            f"  Reconnect Backoff: {self.connection.reconnect_base_delay}s "
            f"-> {self.connection.reconnect_max_delay}s"
        )
        attempts = self.connection.max_reconnect_attempts
        logger.info(f"  Max Reconnect Attempts: {attempts if attempts else 'unlimited'}")

        logger.info("Keeper Policy:")
        logger.info(f"  Fatal On Query Error: {self.policy.fatal_on_query_error}")
        logger.info(f"  Dedup Enabled: {self.policy.dedup_enabled}")
        logger.info(f"  Post-Submit Cooldown: {self.policy.post_submit_cooldown} seconds")

        logger.info("Transaction Settings:")
        logger.info(f"  Gas Limit: {self.gas_limit}")
        logger.info(f"  Check Data: {Web3.to_hex(self.check_data)}")
        logger.info("  Signing Key: [CONFIGURED]")

        logger.info("=" * 60)
