#!/usr/bin/env python3
"""Transaction signing and broadcast for the keeper.

A transaction counts as submitted once the node accepts it into its pool; the
executor does not wait for a receipt.
"""

import logging
from typing import TYPE_CHECKING

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .errors import ChainConnectionError, SigningError, SubmitError
from .models import TransactionRequest, TransactionResult
from .utils.chain_watcher import TRANSPORT_ERRORS

if TYPE_CHECKING:
    from .reconnect_supervisor import ReconnectSupervisor

logger = logging.getLogger(__name__)

# Node rejections caused by the key itself rather than by network conditions
SIGNING_REJECTIONS: tuple[str, ...] = (
    "invalid chain id",
    "invalid sender",
)


class Executor:
    """Signs transactions with the keeper key and broadcasts them."""

    def __init__(self, chain: "ReconnectSupervisor", signing_key: str) -> None:
        """
        Initialize the Executor.

        Args:
            chain: Source of the current connection (anything exposing ``w3``)
            signing_key: Hex-encoded private key of the submitting account

        Raises:
            SigningError: If the key cannot be loaded
        """
        self.chain = chain
        try:
            self._account: LocalAccount = Account.from_key(signing_key)
        except Exception as e:
            # The key must not end up in logs through the exception chain
            raise SigningError(f"Invalid signing key ({type(e).__name__})") from None

        logger.info(f"Executor initialized for signer {self._account.address}")

    @property
    def address(self) -> str:
        """Checksummed address of the signing account."""
        return self._account.address

    async def submit(self, request: TransactionRequest, order_key: str = "") -> TransactionResult:
        """
        Sign and broadcast a transaction.

        Args:
            request: The transaction to send
            order_key: Order the transaction executes, carried into the result

        Returns:
            The hash of the transaction accepted by the node

        Raises:
            SigningError: If the request cannot be signed with the keeper key,
                or the node rejects the signature for this chain
            SubmitError: If the node rejects the transaction or the RPC fails
        """
        if request.from_address != self._account.address:
            raise SigningError(
                f"Transaction sender {request.from_address} does not match "
                f"signing key address {self._account.address}"
            )

        try:
            signed = self._account.sign_transaction(request.to_tx_params())
        except Exception as e:
            raise SigningError(f"Failed to sign transaction: {e}") from None

        try:
            tx_hash = await self.chain.w3.eth.send_raw_transaction(signed.raw_transaction)
        except (ChainConnectionError, *TRANSPORT_ERRORS) as e:
            message = str(e)
            if any(reason in message.lower() for reason in SIGNING_REJECTIONS):
                raise SigningError(
                    f"Node rejected signature: {message}",
                    context={"nonce": request.nonce, "chain_id": request.chain_id},
                ) from e
            raise SubmitError(
                f"Node rejected transaction: {message}",
                context={"nonce": request.nonce, "order": order_key},
            ) from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"✓ Transaction submitted successfully: {tx_hash_hex}")
        return TransactionResult(tx_hash=tx_hash_hex, nonce=request.nonce, order_key=order_key)
