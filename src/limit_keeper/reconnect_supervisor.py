#!/usr/bin/env python3
"""Connection supervision for the block header stream.

This module wraps a ChainWatcher with a reconnecting state machine so the
keeper loop sees one uninterrupted stream of block events. Blocks missed while
disconnected are not replayed: the stream resumes with whatever header the
node sends next.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from enum import Enum

from web3 import AsyncWeb3

from .errors import ChainConnectionError, ReconnectExhaustedError
from .models import BlockEvent
from .utils.chain_watcher import ChainWatcher

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection state of the supervised watcher."""
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    CONNECTED = "connected"
    FAILED = "failed"


class ReconnectSupervisor:
    """Keeps a ChainWatcher connected and re-subscribes after failures."""

    def __init__(
        self,
        watcher: ChainWatcher,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        max_attempts: int | None = None
    ) -> None:
        """
        Initialize the ReconnectSupervisor.

        Args:
            watcher: The chain watcher to supervise
            base_delay: Delay in seconds before the first retry
            max_delay: Upper bound on the delay between retries
            max_attempts: Consecutive failed dials before giving up (None retries forever)
        """
        self.watcher = watcher
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts

        self.state = ConnectionState.DISCONNECTED
        self.reconnect_count = 0
        self._has_connected = False
        # Failed dials and empty sessions since the last delivered block
        self._consecutive_failures = 0

    @property
    def w3(self) -> AsyncWeb3:
        """The currently connected AsyncWeb3 instance.

        Raises:
            ChainConnectionError: If no connection is established right now
        """
        return self.watcher.w3

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def _transition(self, new_state: ConnectionState) -> None:
        if new_state is not self.state:
            logger.debug(f"Connection state: {self.state.value} -> {new_state.value}")
            self.state = new_state

    async def _connect(self) -> None:
        """Dial until the watcher is subscribed, backing off between failures."""
        attempt = 0
        while True:
            try:
                await self.watcher.open()
            except ChainConnectionError as e:
                attempt += 1
                if self.max_attempts is not None and attempt >= self.max_attempts:
                    self._transition(ConnectionState.FAILED)
                    logger.error(f"Giving up after {attempt} connection attempts: {e}")
                    raise ReconnectExhaustedError(
                        f"Could not connect after {attempt} attempts",
                        attempts=attempt,
                    ) from e

                self._consecutive_failures += 1
                delay = self.backoff_delay(self._consecutive_failures)
                logger.warning(f"Connection attempt {attempt} failed: {e}")
                logger.info(f"Retrying in {delay} seconds...")
                self._transition(ConnectionState.RECONNECTING)
                await asyncio.sleep(delay)
                continue

            if self._has_connected:
                self.reconnect_count += 1
                logger.info(f"Reconnected to chain node (reconnect #{self.reconnect_count})")
            else:
                logger.info("Connected to chain node")
            self._has_connected = True
            self._transition(ConnectionState.CONNECTED)
            return

    async def events(self) -> AsyncIterator[BlockEvent]:
        """
        Yield block events indefinitely, reconnecting on failure.

        Raises:
            ReconnectExhaustedError: Only when ``max_attempts`` is set and used up
        """
        while True:
            if self.state is not ConnectionState.CONNECTED:
                await self._connect()

            try:
                async for event in self.watcher.stream():
                    self._consecutive_failures = 0
                    yield event
            except ChainConnectionError as e:
                logger.warning(f"Lost block header subscription: {e}")

            self._transition(ConnectionState.DISCONNECTED)
            await self.watcher.close()
            self._transition(ConnectionState.RECONNECTING)

            self._consecutive_failures += 1
            delay = self.backoff_delay(self._consecutive_failures)
            logger.info(f"Re-subscribing in {delay} seconds...")
            await asyncio.sleep(delay)

    async def close(self) -> None:
        """Close the underlying watcher."""
        await self.watcher.close()
        self._transition(ConnectionState.DISCONNECTED)
