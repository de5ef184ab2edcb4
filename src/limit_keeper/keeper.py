import asyncio
import logging
from typing import Any

from .config import KeeperConfig, KeeperPolicy
from .dedup_guard import DedupGuard
from .errors import BuildError, QueryError, SigningError, SubmitError
from .executor import Executor
from .models import BlockEvent, BlockOutcome, LoopState
from .reconnect_supervisor import ReconnectSupervisor
from .transaction_builder import TransactionBuilder
from .upkeep_checker import UpkeepChecker
from .utils.chain_watcher import ChainWatcher
from .utils.contract_utility import ContractUtility

# Get logger for this module
logger = logging.getLogger(__name__)


class KeeperLoop:
    """
    Keeper that watches new blocks, asks the limit order contract whether an
    order is eligible and submits one ``performUpkeep`` transaction for it.

    Blocks are processed strictly one at a time. Recoverable failures are
    logged and the loop waits for the next block; ``SigningError`` and
    ``ReconnectExhaustedError`` propagate out of ``run``.
    """

    METRICS_LOG_INTERVAL = 10  # blocks

    def __init__(
        self,
        supervisor: ReconnectSupervisor,
        checker: UpkeepChecker,
        builder: TransactionBuilder,
        executor: Executor,
        dedup: DedupGuard,
        policy: KeeperPolicy | None = None
    ) -> None:
        """
        Initialize the KeeperLoop from its collaborators.

        :param supervisor: Source of block events and of the live connection
        :param checker: Eligibility query against the contract
        :param builder: Transaction assembly from chain state
        :param executor: Signing and broadcast
        :param dedup: Record of orders already submitted by this loop
        :param policy: Behaviour switches (defaults to KeeperPolicy())
        """
        self.supervisor = supervisor
        self.checker = checker
        self.builder = builder
        self.executor = executor
        self.dedup = dedup
        self.policy = policy or KeeperPolicy()

        self.state = LoopState.IDLE

        # Metrics tracking
        self.blocks_processed = 0
        self.submissions = 0
        self.submission_failures = 0
        self.query_failures = 0

    @classmethod
    def from_config(cls, config: KeeperConfig) -> "KeeperLoop":
        """
        Wire a KeeperLoop from configuration.

        :param config: Keeper configuration object
        :return: A keeper ready to ``run``
        :raises SigningError: If the signing key cannot be loaded
        """
        config.log_config()

        contract_util = ContractUtility(config.chain.contract_address)
        watcher = ChainWatcher(
            rpc_endpoint=config.chain.rpc_endpoint,
            request_timeout=config.connection.request_timeout
        )
        supervisor = ReconnectSupervisor(
            watcher,
            base_delay=config.connection.reconnect_base_delay,
            max_delay=config.connection.reconnect_max_delay,
            max_attempts=config.connection.max_reconnect_attempts
        )

        keeper = cls(
            supervisor=supervisor,
            checker=UpkeepChecker(supervisor, contract_util, check_data=config.check_data),
            builder=TransactionBuilder(contract_util, gas_limit=config.gas_limit),
            executor=Executor(supervisor, config.signing_key),
            dedup=DedupGuard(enabled=config.policy.dedup_enabled),
            policy=config.policy
        )
        logger.info(f"KeeperLoop initialized (contract: {config.chain.contract_address})")
        return keeper

    async def process_block(self, block: BlockEvent) -> BlockOutcome:
        """
        Run one keeper iteration for a block event.

        :param block: The new chain head
        :return: What happened to this block
        :raises SigningError: On signing or key/chain mismatch failures
        :raises QueryError: Only when the policy makes query failures fatal
        """
        self.blocks_processed += 1
        try:
            return await self._process_block(block)
        finally:
            self.state = LoopState.IDLE
            if self.blocks_processed % self.METRICS_LOG_INTERVAL == 0:
                self.log_metrics()

    async def _process_block(self, block: BlockEvent) -> BlockOutcome:
        self.state = LoopState.CHECKING
        try:
            candidate = await self.checker.check(block)
        except QueryError as e:
            self.query_failures += 1
            if self.policy.fatal_on_query_error:
                logger.error(f"Block {block.number} | upkeep query failed: {e}")
                raise
            logger.warning(f"Block {block.number} | upkeep query failed, skipping: {e}")
            return BlockOutcome.QUERY_FAILED

        order_key = candidate.order_key
        logger.info(
            f"Block {block.number} | order={order_key if candidate.order_id else '-'} "
            f"| should_execute={candidate.should_execute}"
        )

        if not candidate.should_execute:
            return BlockOutcome.NOT_ELIGIBLE

        self.state = LoopState.GATING
        if not self.dedup.should_submit(order_key):
            logger.info(f"Order {order_key} already submitted, not resubmitting")
            return BlockOutcome.DUPLICATE

        self.state = LoopState.SUBMITTING
        logger.info(f"Performing upkeep for order {order_key}")
        try:
            request = await self.builder.build(
                self.supervisor, self.executor.address, candidate.perform_data
            )
        except BuildError as e:
            self.submission_failures += 1
            logger.warning(f"Could not build transaction for order {order_key}: {e}")
            return BlockOutcome.BUILD_FAILED

        try:
            result = await self.executor.submit(request, order_key=order_key)
        except SubmitError as e:
            self.submission_failures += 1
            logger.warning(f"✗ Submission failed for order {order_key}, will retry: {e}")
            return BlockOutcome.SUBMIT_FAILED

        self.dedup.mark_submitted(order_key)
        self.submissions += 1
        logger.info(f"Tx Hash: {result.tx_hash} (order {order_key}, nonce {result.nonce})")

        if self.policy.post_submit_cooldown > 0:
            await asyncio.sleep(self.policy.post_submit_cooldown)

        return BlockOutcome.SUBMITTED

    def get_metrics(self) -> dict[str, Any]:
        """
        Get current keeper metrics.

        :return: Dictionary of metric names to values
        """
        return {
            "blocks_processed": self.blocks_processed,
            "submissions": self.submissions,
            "submission_failures": self.submission_failures,
            "query_failures": self.query_failures,
            "duplicates_blocked": self.dedup.duplicates_blocked,
            "orders_recorded": len(self.dedup),
            "reconnects": self.supervisor.reconnect_count,
        }

    def log_metrics(self) -> None:
        """Log current keeper metrics."""
        metrics = self.get_metrics()
        logger.info(
            f"Keeper Metrics: "
            f"Blocks={metrics['blocks_processed']}, "
            f"Submitted={metrics['submissions']}, "
            f"Failed={metrics['submission_failures']}, "
            f"QueryFailures={metrics['query_failures']}, "
            f"Duplicates={metrics['duplicates_blocked']}, "
            f"Reconnects={metrics['reconnects']}"
        )

    async def shutdown(self) -> None:
        """Gracefully shutdown the keeper."""
        logger.info("Shutting down KeeperLoop...")
        await self.supervisor.close()
        logger.info("KeeperLoop shutdown complete")

    async def run(self) -> None:
        """
        Main entry point for the KeeperLoop.
        Consumes block events until cancelled or a fatal error occurs.
        """
        logger.info("Starting KeeperLoop...")
        try:
            async for block in self.supervisor.events():
                try:
                    await self.process_block(block)
                except (SigningError, QueryError):
                    # QueryError only escapes process_block when the policy makes it fatal
                    raise
                except Exception as e:
                    logger.error(f"Error processing block {block.number}: {e}", exc_info=True)
        finally:
            await self.shutdown()
