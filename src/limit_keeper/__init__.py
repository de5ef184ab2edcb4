"""
Limit order keeper package.

Watches new blocks, polls the limit order contract's ``checkUpkeep`` and
submits ``performUpkeep`` for eligible orders.
"""

from .config import KeeperConfig, KeeperPolicy
from .dedup_guard import DedupGuard
from .keeper import KeeperLoop
from .models import BlockEvent, OrderCandidate, TransactionRequest, TransactionResult

__all__ = [
    "KeeperConfig",
    "KeeperPolicy",
    "KeeperLoop",
    "DedupGuard",
    "BlockEvent",
    "OrderCandidate",
    "TransactionRequest",
    "TransactionResult",
]
__version__ = "0.1.0"
