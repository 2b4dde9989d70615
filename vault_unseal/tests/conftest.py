from typing import List, Sequence

import pytest

from vault_unseal.clients.base import NodeClient, SecretProvider, UnsealAttemptResult
from vault_unseal.constants import ServerState
from vault_unseal.errors import NodeClientError, TransportError
from vault_unseal.unseal.shutdown import ShutdownController


class FakeSecretProvider(SecretProvider):
    """
    Provider returning a fixed list of shares, or raising the configured error
    """

    def __init__(self, shares: Sequence[str] = ("a", "b", "c"), error: Exception = None):
        self.shares = list(shares)
        self.error = error
        self.calls = []

    def get_shares(self, identifiers):
        self.calls.append(list(identifiers))
        if self.error:
            raise self.error
        return self.shares


class FakeNodeClient(NodeClient):
    """
    Node client replaying scripted status responses and unseal results. Entries that are exceptions are raised.
    The last status is repeated once the script is exhausted.
    """

    def __init__(self, node: str = "http://vault-0:8200", statuses: List = None, results: List = None,
                 on_status=None):
        self.node = node
        self.statuses = list(statuses or [ServerState.ACTIVE])
        self.results = list(results or [])
        self.on_status = on_status
        self.status_calls = 0
        self.applied = []

    @property
    def calls(self) -> int:
        return self.status_calls + len(self.applied)

    def check_status(self) -> ServerState:
        self.status_calls += 1
        if self.on_status:
            self.on_status(self)
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(status, Exception):
            raise status
        return status

    def apply_share(self, share: str) -> UnsealAttemptResult:
        self.applied.append(share)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def sealed(threshold: int, progress: int = 1) -> UnsealAttemptResult:
    return UnsealAttemptResult(sealed=True, threshold=threshold, progress=progress)


def unsealed(threshold: int = 2) -> UnsealAttemptResult:
    return UnsealAttemptResult(sealed=False, threshold=threshold, progress=0)


def transport_error(node: str = "http://vault-0:8200") -> TransportError:
    return TransportError("connection refused", node=node)


def failing_factory(bad_node: str, clients: dict):
    """
    Client factory failing for bad_node and recording all other created clients in clients
    """

    def factory(node):
        if node == bad_node:
            raise NodeClientError("invalid vault node url", node=node)
        client = FakeNodeClient(node=node, statuses=[ServerState.SEALED], results=[unsealed()] * 10)
        clients[node] = client
        return client

    return factory


@pytest.fixture
def shutdown():
    return ShutdownController()


@pytest.fixture
def provider():
    return FakeSecretProvider()


@pytest.fixture
def config_dict():
    return {
        "vault_nodes": ["http://vault-0:8200", "http://vault-1:8200"],
        "bitwarden": {
            "token": "0.test-access-token",
            "secret_ids": [
                "3f1c2a5e-0d1b-4b8e-9d1a-6f0e2c7b9a11",
                "8b2d4f6a-1c3e-4a5b-8c7d-9e0f1a2b3c4d",
            ],
        },
    }
