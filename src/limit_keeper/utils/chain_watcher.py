"""
Chain watcher for real-time block header monitoring.

Provides a WebSocket ``newHeads`` subscription exposed as an async stream of
block events. Transport failures surface as ``ChainConnectionError``.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception
from web3.providers import WebSocketProvider
from websockets.exceptions import WebSocketException

from ..config import redact_endpoint
from ..errors import ChainConnectionError
from ..models import BlockEvent

# Everything the transport can raise when the socket is unusable
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionError,
    OSError,
    asyncio.TimeoutError,
    WebSocketException,
    Web3Exception,
)


class ChainWatcher:
    """
    Owns a single WebSocket connection and its ``newHeads`` subscription.

    Headers are yielded in the order the node sends them. Duplicate or
    out-of-order notifications are passed through unfiltered.
    """

    def __init__(self, rpc_endpoint: str, request_timeout: int = 30) -> None:
        """
        Initialize the ChainWatcher.

        Args:
            rpc_endpoint: Node endpoint (http(s) URLs are converted to ws(s))
            request_timeout: Per-request timeout in seconds for the provider
        """
        self.rpc_endpoint = rpc_endpoint
        self.websocket_url = self._convert_to_websocket_url(rpc_endpoint)
        self.display_url = redact_endpoint(self.websocket_url)
        self.request_timeout = request_timeout

        self._w3: AsyncWeb3 | None = None
        self.subscription_id: str | None = None
        self._stream_failed = False

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @staticmethod
    def _convert_to_websocket_url(url: str) -> str:
        """Convert HTTP RPC URL to WebSocket URL."""
        if url.startswith("https://"):
            return url.replace("https://", "wss://", 1)
        if url.startswith("http://"):
            return url.replace("http://", "ws://", 1)
        return url

    @property
    def w3(self) -> AsyncWeb3:
        """The live connection."""
        if self._w3 is None:
            raise ChainConnectionError("Chain watcher is not connected")
        return self._w3

    @property
    def is_open(self) -> bool:
        return self._w3 is not None

    async def open(self) -> None:
        """
        Dial the node and subscribe to new block headers.

        Raises:
            ChainConnectionError: If the dial or the subscription fails
        """
        if self._w3 is not None:
            await self.close()

        self.logger.info(f"Connecting to WebSocket: {self.display_url}")
        w3 = AsyncWeb3(
            WebSocketProvider(
                self.websocket_url,
                request_timeout=self.request_timeout,
            )
        )
        self._w3 = w3
        self._stream_failed = False

        try:
            await w3.provider.connect()
            self.subscription_id = await w3.eth.subscribe("newHeads")
        except TRANSPORT_ERRORS as e:
            self._stream_failed = True
            await self.close()
            raise ChainConnectionError(
                f"Failed to subscribe to new heads on {self.display_url}: {e}",
                context={"endpoint": self.display_url},
            ) from e

        self.logger.info(f"Subscribed to newHeads (subscription {self.subscription_id})")

    async def stream(self) -> AsyncIterator[BlockEvent]:
        """
        Yield a BlockEvent for every header notification.

        Raises:
            ChainConnectionError: On transport failure or when the node closes
                the subscription
        """
        w3 = self.w3
        try:
            async for payload in w3.socket.process_subscriptions():
                if payload.get("subscription") != self.subscription_id:
                    continue

                event = await self._to_block_event(w3, payload.get("result"))
                if event is not None:
                    yield event
        except TRANSPORT_ERRORS as e:
            self._stream_failed = True
            raise ChainConnectionError(
                f"Block header subscription failed: {e}",
                context={"endpoint": self.display_url},
            ) from e

        self._stream_failed = True
        raise ChainConnectionError(
            "Block header subscription closed by the node",
            context={"endpoint": self.display_url},
        )

    async def _to_block_event(self, w3: AsyncWeb3, header: Any) -> BlockEvent | None:
        """
        Convert a header notification into a BlockEvent.

        Headers without a number are resolved through ``get_block(hash)``.
        A header that cannot be resolved is dropped.
        """
        if not header or header.get("hash") is None:
            self.logger.warning(f"Ignoring malformed header notification: {header}")
            return None

        block_hash = Web3.to_hex(header["hash"]) if isinstance(header["hash"], bytes) else header["hash"]

        if (number := header.get("number")) is None:
            try:
                block = await w3.eth.get_block(block_hash)
                number = block["number"]
            except TRANSPORT_ERRORS as e:
                self.logger.warning(f"Could not resolve block {block_hash}: {e}")
                return None

        return BlockEvent(hash=block_hash, number=_as_int(number))

    async def close(self) -> None:
        """Release the subscription and the connection."""
        if self._w3 is None:
            return

        self.logger.info("Closing block header subscription...")
        try:
            if self.subscription_id and not self._stream_failed:
                await self._w3.eth.unsubscribe(self.subscription_id)
            await self._w3.provider.disconnect()
        except TRANSPORT_ERRORS as e:
            self.logger.warning(f"Error during cleanup: {e}")
        finally:
            self._w3 = None
            self.subscription_id = None


def _as_int(value: Any) -> int:
    """Parse a block number that may arrive as int or hex string."""
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)
