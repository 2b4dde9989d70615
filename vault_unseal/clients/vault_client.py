from typing import Union
from urllib.parse import urlparse

import hvac
import hvac.exceptions
import requests
from loguru import logger

from vault_unseal.clients.base import NodeClient, UnsealAttemptResult
from vault_unseal.constants import DEFAULT_REQUEST_TIMEOUT, ServerState
from vault_unseal.errors import NodeClientError, TransportError


def validate_node_url(url: str) -> str:
    """
    Make sure the given address is an absolute http(s) url

    :param url: address of a vault node
    :return: the address without surrounding whitespace
    """
    if not isinstance(url, str):
        raise ValueError(f"{url!r} is not a valid vault node url")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"{url!r} is not a valid vault node url")
    return url


class VaultNodeClient(NodeClient):
    """
    Node client talking to the sys endpoints of a vault server through hvac
    """

    def __init__(self, node: str, timeout: float = DEFAULT_REQUEST_TIMEOUT, verify: Union[bool, str] = True,
                 client: hvac.Client = None):
        """
        Set up the hvac client for the node

        :param node: url of the vault node
        :param timeout: timeout in seconds applied to every request
        :param verify: whether to verify tls certificates, or the path of a ca bundle to verify them with
        :param client: already configured hvac client to use instead of creating one
        """
        try:
            self.node = validate_node_url(node)
        except ValueError as e:
            raise NodeClientError(str(e), node=str(node))

        if client is None:
            try:
                client = hvac.Client(url=self.node, timeout=timeout, verify=verify)
            except (TypeError, ValueError) as e:
                raise NodeClientError(f"failed to create vault client: {e}", node=self.node)
        self.client = client
        logger.debug(f"Created vault client for {self.node} (timeout={timeout}s, verify={verify})")

    def check_status(self) -> ServerState:
        try:
            seal_status = self.client.sys.read_seal_status()
            if not seal_status["initialized"]:
                return ServerState.UNINITIALIZED
            if seal_status["sealed"]:
                return ServerState.SEALED

            leader = self.client.sys.read_leader_status()
        except (hvac.exceptions.VaultError, requests.exceptions.RequestException, OSError) as e:
            raise TransportError(f"failed to check the status of vault at {self.node}: {e}", node=self.node)
        except (KeyError, TypeError) as e:
            logger.warning(f"Unexpected seal status response from {self.node}: {e}")
            return ServerState.UNKNOWN

        if not isinstance(leader, dict):
            return ServerState.UNKNOWN
        if not leader.get("ha_enabled") or leader.get("is_self"):
            return ServerState.ACTIVE
        return ServerState.STANDBY

    def apply_share(self, share: str) -> UnsealAttemptResult:
        try:
            response = self.client.sys.submit_unseal_key(key=share)
            return UnsealAttemptResult(
                sealed=bool(response["sealed"]),
                threshold=int(response["t"]),
                progress=int(response["progress"]),
            )
        except (hvac.exceptions.VaultError, requests.exceptions.RequestException, OSError) as e:
            raise TransportError(f"failed to submit unseal key to vault at {self.node}: {e}", node=self.node)
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"unexpected unseal response from vault at {self.node}: {e}", node=self.node)
