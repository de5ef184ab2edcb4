#!/usr/bin/env python3
"""Shared fixtures and fakes for the keeper tests."""

from collections.abc import AsyncIterator, Iterable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_account import Account

from limit_keeper.errors import ChainConnectionError
from limit_keeper.models import BlockEvent
from limit_keeper.utils.contract_utility import ContractUtility

TEST_PRIVATE_KEY = "0x" + "1" * 64
TEST_SIGNER = Account.from_key(TEST_PRIVATE_KEY).address
CONTRACT_ADDRESS = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"


async def _resolve(value: Any) -> Any:
    if isinstance(value, BaseException):
        raise value
    return value


class FakeEth:
    """Stand-in for ``AsyncWeb3.eth`` with awaitable properties.

    ``gas_price`` and ``chain_id`` may be set to an exception instance to make
    the corresponding fetch fail.
    """

    def __init__(self, gas_price: Any = 10, chain_id: Any = 369, nonce: int = 5) -> None:
        self.gas_price_value = gas_price
        self.chain_id_value = chain_id
        self.pending_nonce = nonce
        self.get_transaction_count = AsyncMock(side_effect=self._transaction_count)
        self.send_raw_transaction = AsyncMock(side_effect=self._send_raw)
        self.get_block = AsyncMock()
        self.sent: list[bytes] = []

    @property
    def gas_price(self) -> Any:
        return _resolve(self.gas_price_value)

    @property
    def chain_id(self) -> Any:
        return _resolve(self.chain_id_value)

    async def _transaction_count(self, address: str, block_identifier: str = "latest") -> int:
        return self.pending_nonce

    async def _send_raw(self, raw: bytes) -> bytes:
        # A node accepting a transaction bumps the pending nonce
        self.sent.append(raw)
        self.pending_nonce += 1
        return bytes([len(self.sent)]) * 32


class FakeChain:
    """Anything exposing ``w3`` is accepted as the chain context."""

    def __init__(self, eth: FakeEth | None = None) -> None:
        self.w3 = MagicMock()
        self.w3.eth = eth or FakeEth()


class DisconnectedChain:
    @property
    def w3(self) -> Any:
        raise ChainConnectionError("Chain watcher is not connected")


class ScriptedChecker:
    """UpkeepChecker double returning a scripted result per block number."""

    def __init__(self, script: dict[int, Any], default: Any = None) -> None:
        self.script = script
        self.default = default
        self.calls: list[int] = []

    async def check(self, block: BlockEvent) -> Any:
        self.calls.append(block.number)
        result = self.script.get(block.number, self.default)
        if isinstance(result, BaseException):
            raise result
        return result


class FakeSupervisor:
    """ReconnectSupervisor double yielding a fixed list of blocks."""

    def __init__(self, blocks: Iterable[BlockEvent], eth: FakeEth | None = None) -> None:
        self.blocks = list(blocks)
        self.w3 = MagicMock()
        self.w3.eth = eth or FakeEth()
        self.reconnect_count = 0
        self.close = AsyncMock()

    async def events(self) -> AsyncIterator[BlockEvent]:
        for block in self.blocks:
            yield block


def block(number: int) -> BlockEvent:
    return BlockEvent(hash="0x" + f"{number:064x}", number=number)


@pytest.fixture
def fake_eth():
    return FakeEth()


@pytest.fixture
def contract_util():
    return ContractUtility(CONTRACT_ADDRESS)
