#!/usr/bin/env python3
"""Transaction assembly for ``performUpkeep``.

Gas price, chain id and the signer's pending nonce are read from the node for
every transaction. The nonce is never incremented locally, so transactions
broadcast elsewhere with the same key are accounted for.
"""

import logging
from typing import TYPE_CHECKING

from web3 import Web3

from .errors import BuildError, ChainConnectionError
from .models import TransactionRequest
from .utils.chain_watcher import TRANSPORT_ERRORS

if TYPE_CHECKING:
    from .reconnect_supervisor import ReconnectSupervisor
    from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)

_FETCH_ERRORS = (ChainConnectionError, *TRANSPORT_ERRORS)


class TransactionBuilder:
    """Builds complete ``performUpkeep`` transactions from live chain state."""

    def __init__(self, contract_util: "ContractUtility", gas_limit: int = 5_300_000) -> None:
        """
        Initialize the TransactionBuilder.

        Args:
            contract_util: ABI holder used to encode call data
            gas_limit: Fixed gas ceiling covering the worst-case upkeep cost
        """
        self.contract_util = contract_util
        self.gas_limit = gas_limit

    async def build(
        self,
        chain: "ReconnectSupervisor",
        signer_address: str,
        payload: bytes
    ) -> TransactionRequest:
        """
        Build a ``performUpkeep(payload)`` transaction for ``signer_address``.

        Args:
            chain: Source of the current connection (anything exposing ``w3``)
            signer_address: Address that will sign the transaction
            payload: ``performData`` returned by ``checkUpkeep``

        Returns:
            A TransactionRequest ready to be signed

        Raises:
            BuildError: If gas price, chain id or nonce cannot be fetched
        """
        signer = Web3.to_checksum_address(signer_address)

        try:
            w3 = chain.w3
        except ChainConnectionError as e:
            raise BuildError(f"No connection to build transaction: {e}", field="connection") from e

        try:
            gas_price = await w3.eth.gas_price
        except _FETCH_ERRORS as e:
            raise BuildError(f"Failed to fetch gas price: {e}", field="gas_price") from e

        try:
            chain_id = await w3.eth.chain_id
        except _FETCH_ERRORS as e:
            raise BuildError(f"Failed to fetch chain id: {e}", field="chain_id") from e

        try:
            nonce = await w3.eth.get_transaction_count(signer, "pending")
        except _FETCH_ERRORS as e:
            raise BuildError(f"Failed to fetch pending nonce: {e}", field="nonce") from e

        request = TransactionRequest(
            from_address=signer,
            to=self.contract_util.contract_address,
            data=self.contract_util.encode_perform_upkeep(payload),
            gas_price=int(gas_price),
            gas_limit=self.gas_limit,
            nonce=int(nonce),
            chain_id=int(chain_id),
        )
        logger.debug(f"Built transaction: {request.to_dict()}")
        return request
