#!/usr/bin/env python3
"""Data models for the limit order keeper.

This module provides immutable data classes for the values that flow through
one keeper iteration: the block that triggered it, the contract's verdict,
the transaction built from chain state and the result of broadcasting it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from web3 import Web3
from web3.types import TxParams, Wei


class LoopState(Enum):
    """Where the keeper loop is within a single block iteration."""
    IDLE = "idle"
    CHECKING = "checking"
    GATING = "gating"
    SUBMITTING = "submitting"


class BlockOutcome(Enum):
    """What happened to a single block event."""
    QUERY_FAILED = "query_failed"
    NOT_ELIGIBLE = "not_eligible"
    DUPLICATE = "duplicate"
    BUILD_FAILED = "build_failed"
    SUBMIT_FAILED = "submit_failed"
    SUBMITTED = "submitted"


@dataclass(frozen=True, slots=True)
class BlockEvent:
    """A new chain head as reported by the subscription.

    Attributes:
        hash: Block hash with 0x prefix
        number: Block number
    """

    hash: str
    number: int

    def __str__(self) -> str:
        return f"BlockEvent(number={self.number}, hash={self.hash[:10]}...)"


@dataclass(frozen=True, slots=True)
class OrderCandidate:
    """The contract's answer to ``checkUpkeep`` for the current chain state.

    The contract returns a single ``bytes`` value that identifies the order and
    is also passed back verbatim to ``performUpkeep``, so ``perform_data`` is
    normally equal to ``order_id``.

    Attributes:
        order_id: Raw order identifier returned by the contract
        perform_data: Payload for ``performUpkeep``
        should_execute: Whether the order is eligible right now
    """

    order_id: bytes
    perform_data: bytes
    should_execute: bool

    @property
    def order_key(self) -> str:
        """Hex encoding of the order id used for deduplication and logging."""
        return Web3.to_hex(self.order_id)

    def __str__(self) -> str:
        return (
            f"OrderCandidate(order={self.order_key if self.order_id else '-'}, "
            f"should_execute={self.should_execute})"
        )


@dataclass(frozen=True, slots=True)
class TransactionRequest:
    """A complete, unsigned ``performUpkeep`` transaction.

    Attributes:
        from_address: Checksummed signer address
        to: Checksummed contract address
        data: ABI-encoded call data (0x-prefixed hex)
        gas_price: Gas price in wei, read from the node at build time
        gas_limit: Fixed gas ceiling
        nonce: Pending nonce of the signer, read at build time
        chain_id: Chain id reported by the node
        value: Native value sent with the call (always 0)
    """

    from_address: str
    to: str
    data: str
    gas_price: int
    gas_limit: int
    nonce: int
    chain_id: int
    value: int = 0

    def to_tx_params(self) -> TxParams:
        """Render the request as web3 transaction parameters."""
        return {
            "from": self.from_address,
            "to": self.to,
            "value": Wei(self.value),
            "gas": self.gas_limit,
            "gasPrice": Wei(self.gas_price),
            "nonce": self.nonce,
            "chainId": self.chain_id,
            "data": self.data,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "from": self.from_address,
            "to": self.to,
            "value": self.value,
            "gas_price": self.gas_price,
            "gas_limit": self.gas_limit,
            "nonce": self.nonce,
            "chain_id": self.chain_id,
        }


@dataclass(frozen=True, slots=True)
class TransactionResult:
    """A transaction accepted by the node (not necessarily mined)."""

    tx_hash: str
    nonce: int
    order_key: str

    def __str__(self) -> str:
        return f"TransactionResult(hash={self.tx_hash}, nonce={self.nonce})"
