#!/usr/bin/env python3
"""Eligibility polling against the limit order contract.

``checkUpkeep`` is evaluated against the node's latest state, not pinned to
the header that triggered the check, so the answer may reflect a slightly
newer block.
"""

import logging
from typing import TYPE_CHECKING, Any

from .errors import ChainConnectionError, QueryError
from .models import BlockEvent, OrderCandidate
from .utils.chain_watcher import TRANSPORT_ERRORS

if TYPE_CHECKING:
    from .reconnect_supervisor import ReconnectSupervisor
    from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


class UpkeepChecker:
    """Asks the contract whether an order can be executed right now."""

    def __init__(
        self,
        chain: "ReconnectSupervisor",
        contract_util: "ContractUtility",
        check_data: bytes = b"0x"
    ) -> None:
        """
        Initialize the UpkeepChecker.

        Args:
            chain: Source of the current connection (anything exposing ``w3``)
            contract_util: ABI holder for the limit order contract
            check_data: Argument passed to ``checkUpkeep``
        """
        self.chain = chain
        self.contract_util = contract_util
        self.check_data = check_data

    async def check(self, block: BlockEvent) -> OrderCandidate:
        """
        Query the contract for an execution candidate.

        Args:
            block: The block event that triggered this check

        Returns:
            The contract's verdict for the current chain state

        Raises:
            QueryError: If the call fails or returns an unexpected shape
        """
        try:
            contract = self.contract_util.bind(self.chain.w3)
            result: Any = await contract.functions.checkUpkeep(self.check_data).call()
        except (ChainConnectionError, *TRANSPORT_ERRORS) as e:
            raise QueryError(
                f"checkUpkeep failed at block {block.number}: {e}",
                context={"block": block.number},
            ) from e

        match result:
            case (bool() as should_execute, bytes() as order_id):
                pass
            case _:
                raise QueryError(
                    f"Unexpected checkUpkeep result at block {block.number}: {result!r}",
                    context={"block": block.number},
                )

        candidate = OrderCandidate(
            order_id=bytes(order_id),
            perform_data=bytes(order_id),
            should_execute=should_execute,
        )
        logger.debug(f"checkUpkeep at block {block.number}: {candidate}")
        return candidate
