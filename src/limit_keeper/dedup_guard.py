#!/usr/bin/env python3
"""Duplicate-execution suppression for the keeper.

Order identifiers are recorded only after the node has accepted a
``performUpkeep`` transaction for them. Records are kept for the lifetime of
the process; there is no eviction.
"""

import logging

logger = logging.getLogger(__name__)


class DedupGuard:
    """In-memory set of order identifiers that were already submitted.

    Each keeper loop owns its own guard; two keepers in one process never
    share one.
    """

    def __init__(self, enabled: bool = True) -> None:
        """Initialize the DedupGuard.

        Args:
            enabled: When False every order passes the gate and nothing is recorded
        """
        self.enabled = enabled
        self._processed: set[str] = set()
        self.duplicates_blocked = 0

    def should_submit(self, order_key: str) -> bool:
        """Check whether an order may be submitted.

        Args:
            order_key: Hex encoding of the order identifier

        Returns:
            True if the order has not been submitted before, False otherwise
        """
        if not self.enabled:
            return True

        if order_key.lower() in self._processed:
            self.duplicates_blocked += 1
            logger.debug(f"Order {order_key} already submitted, skipping")
            return False
        return True

    def mark_submitted(self, order_key: str) -> None:
        """Record an order whose transaction was accepted by the node.

        Args:
            order_key: Hex encoding of the order identifier
        """
        if not self.enabled:
            return

        key = order_key.lower()
        if key in self._processed:
            logger.warning(f"Order {order_key} was already marked as submitted")
            return
        self._processed.add(key)

    def __contains__(self, order_key: object) -> bool:
        return isinstance(order_key, str) and order_key.lower() in self._processed

    def __len__(self) -> int:
        return len(self._processed)

    def __bool__(self) -> bool:
        # An empty guard is still a guard
        return True
