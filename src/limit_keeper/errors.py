#!/usr/bin/env python3
"""Error classification for the limit order keeper.

Every failure the keeper can observe is raised as one of the exceptions below.
The ``recoverable`` flag decides what the keeper loop does with it: recoverable
errors are logged and the loop moves on to the next block, unrecoverable ones
terminate the process.
"""

from typing import Any


class KeeperError(Exception):
    """Base class for all classified keeper failures."""

    recoverable: bool = True

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = context or {}


class ChainConnectionError(KeeperError):
    """Dial, subscribe or stream failure on the websocket connection."""


class ReconnectExhaustedError(KeeperError):
    """A finite reconnect budget was configured and has been used up."""

    recoverable = False

    def __init__(self, message: str, attempts: int, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts


class QueryError(KeeperError):
    """``checkUpkeep`` (or another contract read) failed."""


class BuildError(KeeperError):
    """Gas price, chain id or pending nonce could not be fetched."""

    def __init__(self, message: str, field: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.field = field


class SubmitError(KeeperError):
    """The node rejected the transaction or the broadcast timed out."""


class SigningError(KeeperError):
    """Malformed signing key or a key/chain mismatch."""

    recoverable = False


__all__ = [
    "KeeperError",
    "ChainConnectionError",
    "ReconnectExhaustedError",
    "QueryError",
    "BuildError",
    "SubmitError",
    "SigningError",
]
