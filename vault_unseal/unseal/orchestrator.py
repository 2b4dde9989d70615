import asyncio
from functools import partial
from typing import Callable, List, Optional, Sequence

from loguru import logger

from vault_unseal.clients.base import NodeClient, SecretProvider
from vault_unseal.clients.bitwarden_client import BitwardenSecretProvider
from vault_unseal.clients.vault_client import VaultNodeClient
from vault_unseal.config import UnsealConfig
from vault_unseal.constants import DEFAULT_CHECK_INTERVAL
from vault_unseal.errors import NodeClientError, StartupError
from vault_unseal.unseal.shutdown import ShutdownController
from vault_unseal.unseal.worker import UnsealWorker


class Orchestrator:
    """
    Runs one unseal worker per configured vault node until the shutdown is triggered

    :param nodes: urls of the vault nodes to keep unsealed
    :param provider: secret provider the unseal key shares are fetched from, once, before any worker starts
    :param identifiers: identifiers of the shares at the provider
    :param interval: seconds between two status checks of a node
    :param client_factory: callable creating the node client for a node url
    :param shutdown: cancellation signal passed to every worker
    """

    def __init__(self, nodes: Sequence[str], provider: SecretProvider, identifiers: Sequence,
                 interval: float = DEFAULT_CHECK_INTERVAL,
                 client_factory: Callable[[str], NodeClient] = VaultNodeClient,
                 shutdown: Optional[ShutdownController] = None):
        self.nodes = list(nodes)
        self.provider = provider
        self.identifiers = list(identifiers)
        self.interval = interval
        self.client_factory = client_factory
        self.shutdown = shutdown or ShutdownController()
        self.shares = None
        self.workers: List[UnsealWorker] = []

    async def run(self):
        """
        Fetch the shares, create all clients and run the workers concurrently. Returns once every worker has exited.

        :raises StartupError: if no nodes are configured or a node client can not be created, no worker is started
        :raises ProviderError: if the shares can not be fetched
        """
        if not self.nodes:
            raise StartupError("at least one vault node must be specified")

        self.shares = tuple(await asyncio.to_thread(self.provider.get_shares, self.identifiers))
        logger.debug(f"Loaded {len(self.shares)} unseal keys for {len(self.nodes)} vault nodes")

        clients = []
        for node in self.nodes:
            try:
                clients.append(self.client_factory(node))
            except NodeClientError as e:
                raise StartupError(f"failed to create unseal worker for vault at {node}: {e}", node=node) from e

        self.workers = [UnsealWorker(client, self.shares, self.interval, self.shutdown) for client in clients]
        await asyncio.gather(*(worker.run() for worker in self.workers))
        logger.info("All unseal workers stopped")


async def unseal(config: UnsealConfig):
    """
    Keep the configured vault nodes unsealed until SIGINT or SIGTERM is received

    :param config: validated configuration
    """
    logger.info("Starting vault-unseal")
    logger.debug(f"Starting vault-unseal with config: {config.model_dump(exclude={'bitwarden': {'token'}})}")

    provider = BitwardenSecretProvider(
        token=config.bitwarden.token,
        host=config.bitwarden.host,
        state_file=config.bitwarden.state_file,
    )
    shutdown = ShutdownController()
    shutdown.install_signal_handlers()
    try:
        orchestrator = Orchestrator(
            nodes=[node.host for node in config.vault_nodes],
            provider=provider,
            identifiers=config.bitwarden.secret_ids,
            interval=config.check_interval,
            client_factory=partial(VaultNodeClient, timeout=config.request_timeout, verify=config.verify),
            shutdown=shutdown,
        )
        await orchestrator.run()
    finally:
        shutdown.remove_signal_handlers()
