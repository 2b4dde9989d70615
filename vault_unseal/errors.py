"""
Exceptions raised while loading the configuration, starting up and unsealing vault nodes
"""


class UnsealError(Exception):
    """
    Base class of all errors raised by vault-unseal
    """


class ConfigError(UnsealError):
    """
    Error that occurs if the merged configuration is missing values or contains invalid ones
    """


class StartupError(UnsealError):
    """
    Error that aborts the startup before any worker is running
    """

    def __init__(self, message: str, node: str = None):
        super().__init__(message)
        self.node = node


class ProviderError(UnsealError):
    """
    Error raised by a secret provider while fetching the unseal key shares
    """


class NoSharesFound(ProviderError):
    """
    The requested identifiers did not resolve to any share
    """

    def __init__(self, identifiers):
        super().__init__(f"no unseal keys found for ids: {list(identifiers)}")
        self.identifiers = identifiers


class AuthFailure(ProviderError):
    """
    The provider rejected the configured credentials
    """


class ProviderUnavailable(ProviderError):
    """
    The provider could not be reached or returned an error
    """


class NodeClientError(UnsealError):
    """
    Error that occurs if a client for a vault node can not be created
    """

    def __init__(self, message: str, node: str):
        super().__init__(message)
        self.node = node


class TransportError(UnsealError):
    """
    A request against a vault node failed
    """

    def __init__(self, message: str, node: str):
        super().__init__(message)
        self.node = node


class AttemptError(UnsealError):
    """
    An unseal attempt ended without unsealing the node
    """

    def __init__(self, message: str, node: str):
        super().__init__(message)
        self.node = node


class InsufficientShares(AttemptError):
    """
    The node requires more shares than are available, submitting more can never succeed
    """

    def __init__(self, node: str, threshold: int, available: int):
        super().__init__(
            f"not enough keys to unseal the vault: threshold is {threshold} but only {available} are available",
            node,
        )
        self.threshold = threshold
        self.available = available


class FailedToUnseal(AttemptError):
    """
    All shares were submitted and the node is still sealed
    """

    def __init__(self, node: str, progress: int, threshold: int):
        super().__init__(
            f"failed to unseal the vault node {node}: progress {progress}/{threshold} after all keys",
            node,
        )
        self.progress = progress
        self.threshold = threshold


class NoShares(AttemptError):
    """
    The share snapshot is empty
    """

    def __init__(self, node: str):
        super().__init__("no unseal keys available", node)
