from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from vault_unseal.constants import ServerState


@dataclass(frozen=True)
class UnsealAttemptResult:
    """
    Response of a vault node to a single submitted share
    """

    sealed: bool
    threshold: int
    progress: int


class SecretProvider(ABC):
    """
    Source of the escrowed unseal key shares
    """

    @abstractmethod
    def get_shares(self, identifiers: Sequence) -> Sequence[str]:
        """
        Fetch the shares stored under the given identifiers

        :param identifiers: identifiers of the stored shares
        :return: the shares in the order of the identifiers
        :raises NoSharesFound: if the identifiers resolve to zero shares
        :raises AuthFailure: if the provider rejects the credentials
        :raises ProviderUnavailable: if the provider can not be reached
        """


class NodeClient(ABC):
    """
    Client bound to a single vault node. Instances are owned by exactly one worker and are never used concurrently.
    """

    node: str

    @abstractmethod
    def check_status(self) -> ServerState:
        """
        Query the current operational state of the node

        :raises TransportError: if the node can not be queried
        """

    @abstractmethod
    def apply_share(self, share: str) -> UnsealAttemptResult:
        """
        Submit one unseal key share to the node

        :raises TransportError: if the share can not be submitted
        """
