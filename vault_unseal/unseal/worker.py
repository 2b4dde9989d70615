import asyncio
from typing import Sequence, Tuple

from loguru import logger

from vault_unseal.clients.base import NodeClient, UnsealAttemptResult
from vault_unseal.constants import CycleOutcome, ServerState, WorkerState
from vault_unseal.errors import (
    FailedToUnseal,
    InsufficientShares,
    NoShares,
    TransportError,
)
from vault_unseal.unseal.shutdown import ShutdownController


class UnsealWorker:
    """
    Polls a single vault node on a fixed interval and submits the unseal key shares whenever it reports to be sealed

    :param client: client bound to the node, owned exclusively by this worker
    :param shares: read-only snapshot of the unseal key shares, shared with the other workers
    :param interval: seconds between the start of two poll cycles
    :param shutdown: cancellation signal shared by all workers
    """

    def __init__(self, client: NodeClient, shares: Tuple[str, ...], interval: float, shutdown: ShutdownController):
        self.client = client
        self.shares = shares
        self.interval = interval
        self.shutdown = shutdown
        self.state = WorkerState.IDLE
        self.log = logger.bind(node=client.node)

    @property
    def node(self) -> str:
        return self.client.node

    async def run(self):
        """
        Run poll cycles until the shutdown is triggered. Cancellation is only observed between cycles, an unseal
        attempt in progress always runs to completion.
        """
        self.log.info(f"Starting unseal worker for vault at {self.node}")
        loop = asyncio.get_running_loop()

        while not self.shutdown.is_cancelled:
            started = loop.time()
            await self.poll()
            remaining = max(self.interval - (loop.time() - started), 0)
            if await self.shutdown.wait_for_cancellation(timeout=remaining):
                break

        self.state = WorkerState.SHUTTING_DOWN
        self.log.info(f"Unseal worker for vault at {self.node} stopped")

    async def poll(self) -> CycleOutcome:
        """
        Run a single poll cycle: check the node status and try to unseal it if it is sealed. Errors are logged and never
        propagated.
        """
        self.state = WorkerState.POLLING
        try:
            try:
                status = await asyncio.to_thread(self.client.check_status)
            except TransportError as e:
                self.log.error(f"Failed to check the status of vault at {self.node}: {e}")
                return CycleOutcome.STATUS_ERROR
            except Exception as e:
                self.log.exception(f"Unexpected error checking the status of vault at {self.node}: {e}")
                return CycleOutcome.STATUS_ERROR

            if status in (ServerState.STANDBY, ServerState.ACTIVE):
                self.log.debug(f"Vault at {self.node} is in {status.value} mode, skipping unseal")
                return CycleOutcome.SKIPPED
            if status is not ServerState.SEALED:
                self.log.warning(f"Vault at {self.node} is not ready, state: {status.value}")
                return CycleOutcome.NOT_READY

            self.log.info(f"Vault at {self.node} is sealed, starting unseal")
            self.state = WorkerState.UNSEALING
            try:
                await self.unseal()
            except InsufficientShares as e:
                self.log.error(f"Failed to unseal vault at {self.node}: {e}")
                return CycleOutcome.INSUFFICIENT_SHARES
            except FailedToUnseal as e:
                self.log.error(f"Failed to unseal vault at {self.node}: {e}")
                return CycleOutcome.FAILED_TO_UNSEAL
            except NoShares as e:
                self.log.error(f"Failed to unseal vault at {self.node}: {e}")
                return CycleOutcome.NO_SHARES
            except TransportError as e:
                self.log.error(f"Failed to unseal vault at {self.node}: {e}")
                return CycleOutcome.UNSEAL_ERROR
            except Exception as e:
                self.log.exception(f"Unexpected error unsealing vault at {self.node}: {e}")
                return CycleOutcome.UNSEAL_ERROR
            return CycleOutcome.UNSEALED
        finally:
            self.state = WorkerState.IDLE

    async def unseal(self) -> UnsealAttemptResult:
        """
        Submit the shares in order until the node reports to be unsealed

        :return: the response to the share that unsealed the node
        :raises NoShares: if there are no shares to submit
        :raises InsufficientShares: as soon as the node reports a threshold above the number of available shares
        :raises FailedToUnseal: if the node is still sealed after all shares were submitted
        :raises TransportError: if a submission fails
        """
        shares: Sequence[str] = self.shares
        available = len(shares)
        if not available:
            raise NoShares(self.node)

        for index, share in enumerate(shares[:-1], start=1):
            result = await asyncio.to_thread(self.client.apply_share, share)
            self.log.debug(f"Submitted key {index}/{available}, progress {result.progress}/{result.threshold}")

            if result.threshold > available:
                raise InsufficientShares(self.node, threshold=result.threshold, available=available)
            if not result.sealed:
                self.log.info(f"Vault at {self.node} is unsealed")
                return result

        result = await asyncio.to_thread(self.client.apply_share, shares[-1])
        self.log.debug(f"Submitted key {available}/{available}, progress {result.progress}/{result.threshold}")
        if result.sealed:
            raise FailedToUnseal(self.node, progress=result.progress, threshold=result.threshold)

        self.log.info(f"Vault at {self.node} is unsealed")
        return result
