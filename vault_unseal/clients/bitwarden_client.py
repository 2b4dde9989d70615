from typing import List, Sequence
from uuid import UUID

from bitwarden_sdk import BitwardenClient, DeviceType, client_settings_from_dict
from loguru import logger

from vault_unseal.clients.base import SecretProvider
from vault_unseal.constants import BITWARDEN_API_URL, BITWARDEN_IDENTITY_URL
from vault_unseal.errors import AuthFailure, NoSharesFound, ProviderUnavailable


class BitwardenSecretProvider(SecretProvider):
    """
    Secret provider reading the unseal key shares from Bitwarden Secrets Manager

    :param token: machine account access token
    :param host: base url of a self-hosted Bitwarden instance, the Bitwarden cloud is used if not given
    :param state_file: optional path where the sdk persists its authentication state
    """

    def __init__(self, token: str, host: str = None, state_file: str = None, client: BitwardenClient = None):
        self.token = token
        self.host = host
        self.state_file = state_file
        if client is None:
            try:
                client = BitwardenClient(client_settings_from_dict(self._client_settings()))
            except Exception as e:
                raise ProviderUnavailable(f"failed to create Bitwarden client: {e}")
        self.client = client
        self._logged_in = False

    def _client_settings(self) -> dict:
        if self.host:
            base = self.host.rstrip("/")
            api_url, identity_url = f"{base}/api", f"{base}/identity"
        else:
            api_url, identity_url = BITWARDEN_API_URL, BITWARDEN_IDENTITY_URL
        return {
            "apiUrl": api_url,
            "identityUrl": identity_url,
            "deviceType": DeviceType.SDK,
            "userAgent": "vault-unseal",
        }

    def login(self):
        """
        Authenticate against Bitwarden with the access token, only performed once per provider
        """
        if self._logged_in:
            return
        try:
            response = self.client.auth().login_access_token(self.token, self.state_file)
        except Exception as e:
            raise AuthFailure(f"failed to login to Bitwarden: {e}")
        if response is not None and not getattr(response, "success", True):
            raise AuthFailure(f"failed to login to Bitwarden: {getattr(response, 'error_message', None)}")
        self._logged_in = True
        logger.debug("Logged in to Bitwarden secrets manager")

    def get_shares(self, identifiers: Sequence[UUID]) -> List[str]:
        identifiers = list(identifiers)
        if not identifiers:
            raise NoSharesFound(identifiers)

        self.login()
        try:
            response = self.client.secrets().get_by_ids(identifiers)
        except Exception as e:
            raise ProviderUnavailable(f"failed to get secrets from Bitwarden for ids {identifiers}: {e}")
        if not getattr(response, "success", True):
            raise ProviderUnavailable(
                f"failed to get secrets from Bitwarden for ids {identifiers}: {getattr(response, 'error_message', None)}"
            )

        secrets = response.data.data if response.data else []
        values = {str(secret.id): secret.value for secret in secrets}
        # keep the order in which the ids were configured
        shares = [values[str(identifier)] for identifier in identifiers if str(identifier) in values]
        if not shares:
            raise NoSharesFound(identifiers)
        if len(shares) < len(identifiers):
            logger.warning(f"Only {len(shares)} of {len(identifiers)} unseal keys were found in Bitwarden")

        logger.info(f"Fetched {len(shares)} unseal keys from Bitwarden")
        return shares
