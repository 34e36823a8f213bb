"""
Stores holding the rendered policies and the per-profile KV mounts
"""

# Standard
from typing import Any, Dict, List, Optional, Tuple
import abc
import copy
import threading

# Third Party
import requests

# First Party
import alog

# Local
from .. import config
from ..exceptions import TransientError, assert_cluster

log = alog.use_channel("PLCYS")

# Header carrying the token on every Vault request
VAULT_TOKEN_HEADER = "X-Vault-Token"

# Path of the secrets engine mount table
MOUNTS_PATH = "/sys/mounts"


class PolicyStoreBase(abc.ABC):
    """Interface for the remote store of policies and mounts"""

    @abc.abstractmethod
    def read(self, path: str) -> Optional[dict]:
        """Read the data held at path

        Returns:
            data:  Optional[dict]
                The data, or None if nothing is stored at path
        """

    @abc.abstractmethod
    def write(self, path: str, data: dict):
        """Write data to path, replacing anything there"""

    @abc.abstractmethod
    def list_mounts(self) -> Dict[str, dict]:
        """Get the mount table keyed by mount path with a trailing slash"""

    @abc.abstractmethod
    def mount(self, path: str, mount_type: str, options: Optional[dict] = None):
        """Mount a secrets engine of the given type at path"""


class VaultPolicyStore(PolicyStoreBase):
    """PolicyStore talking to the Vault HTTP API"""

    def __init__(
        self,
        address: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            address:  Optional[str]
                Base URL of Vault. Defaults to vault.address
            token:  Optional[str]
                Token sent on every request. Defaults to vault.token
            timeout:  Optional[float]
                Per-request timeout in seconds. Defaults to vault.timeout
            session:  Optional[requests.Session]
                Session used for all requests
        """
        self.address = (address or config.vault.address).rstrip("/")
        self.timeout = timeout or config.vault.timeout
        self.session = session or requests.Session()
        self.session.headers[VAULT_TOKEN_HEADER] = token or config.vault.token

    def read(self, path):
        response = self._request("GET", path)
        if response.status_code == 404:
            log.debug2("Nothing found at %s", path)
            return None
        return response.json().get("data")

    def write(self, path, data):
        self._request("PUT", path, json=data)

    def list_mounts(self):
        body = self._request("GET", MOUNTS_PATH).json()
        mounts = body.get("data", body) if isinstance(body, dict) else body
        assert_cluster(
            isinstance(mounts, dict), f"Unexpected mount table from Vault: {body}"
        )
        return mounts

    def mount(self, path, mount_type, options=None):
        payload = {"type": mount_type}
        if options:
            payload["options"] = options
        self._request("POST", f"{MOUNTS_PATH}/{path.strip('/')}", json=payload)

    ## Implementation Details ##################################################

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.address}/v1/{path.lstrip('/')}"
        log.debug2("%s %s", method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as err:
            raise TransientError(f"Vault request {method} {path} failed: {err}") from err
        if response.status_code >= 400 and response.status_code != 404:
            raise TransientError(
                f"Vault request {method} {path} failed with "
                f"{response.status_code}: {response.text}"
            )
        return response


class DryRunPolicyStore(PolicyStoreBase):
    """PolicyStore which holds everything in memory and records every write"""

    def __init__(
        self,
        data: Optional[Dict[str, dict]] = None,
        mounts: Optional[Dict[str, dict]] = None,
    ):
        self._data = copy.deepcopy(data or {})
        self._mounts = copy.deepcopy(mounts or {})
        self._lock = threading.Lock()
        self.writes: List[Tuple[str, dict]] = []
        self.mount_calls: List[Tuple[str, str, Any]] = []

    def read(self, path):
        log.debug2("DRY RUN read of %s", path)
        with self._lock:
            return copy.deepcopy(self._data.get(path))

    def write(self, path, data):
        log.debug("DRY RUN write of %s", path)
        with self._lock:
            self._data[path] = copy.deepcopy(data)
            self.writes.append((path, copy.deepcopy(data)))

    def list_mounts(self):
        with self._lock:
            return copy.deepcopy(self._mounts)

    def mount(self, path, mount_type, options=None):
        log.debug("DRY RUN mount of %s engine at %s", mount_type, path)
        with self._lock:
            self._mounts[f"{path.strip('/')}/"] = {
                "type": mount_type,
                "options": copy.deepcopy(options),
            }
            self.mount_calls.append((path, mount_type, copy.deepcopy(options)))
