from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, NamedTuple, Optional

from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address

from vault_deployment.constants import NETWORKS_FILEPATH
from vault_deployment.exceptions import ConfigurationError, MissingParameter, UnrecognizedNetwork
from vault_deployment.utils import _load_yaml

OWNER_KEY = "owner"
DEPENDENCIES_KEY = "dependencies"
PARAMETERS_KEY = "parameters"
DEVELOPMENT_KEY = "development"
DEVELOPMENT_DEFAULTS_KEY = "development_defaults"


class NetworkConfig(NamedTuple):
    """Fully resolved configuration for a single deployment network."""

    chain_id: int
    name: str
    development: bool
    owner: ChecksumAddress
    deployer: ChecksumAddress
    dependencies: Mapping[str, ChecksumAddress]
    parameters: Mapping[str, int]

    def lookup(self, key: str) -> Any:
        """Returns the external dependency address or numeric parameter named by key."""
        if key in self.dependencies:
            return self.dependencies[key]
        if key in self.parameters:
            return self.parameters[key]
        raise MissingParameter(key=key, network=self.name)

    def require(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.lookup(key)


def _checksum(value: Any, key: str, network: str) -> ChecksumAddress:
    """
    Checksums a configured address. Empty and zero addresses are treated as
    missing: deploying against them would silently produce a broken unit.
    """
    if value is None or value == "" or value == ZERO_ADDRESS:
        raise MissingParameter(key=key, network=network)
    if not is_address(value):
        raise ConfigurationError(f"'{key}' for network '{network}' is not an address: {value}")
    return to_checksum_address(value)


def _parameter(value: Any, key: str, network: str) -> int:
    if value is None:
        raise MissingParameter(key=key, network=network)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"'{key}' for network '{network}' is not an integer: {value}")
    return value


class NetworkResolver:
    """
    Classifies a chain as development, allow-listed production or unknown,
    and resolves its configuration from static tables.
    """

    def __init__(self, tables: Dict, deployer: Optional[str]):
        networks = tables.get("networks")
        if not isinstance(networks, dict):
            raise ConfigurationError("Network tables missing 'networks' field.")
        self.networks = {int(chain_id): entry or dict() for chain_id, entry in networks.items()}
        defaults = tables.get(DEVELOPMENT_DEFAULTS_KEY) or dict()
        self.development_defaults = defaults.get(PARAMETERS_KEY) or dict()
        self.deployer = deployer

    @classmethod
    def from_yaml(cls, filepath: Path = NETWORKS_FILEPATH, *args, **kwargs) -> "NetworkResolver":
        tables = _load_yaml(filepath)
        return cls(tables=tables, *args, **kwargs)

    def network_name(self, chain_id: int) -> str:
        entry = self.networks.get(chain_id) or dict()
        return entry.get("name", str(chain_id))

    def is_development(self, chain_id: int, development: bool = False) -> bool:
        entry = self.networks.get(chain_id) or dict()
        return development or bool(entry.get(DEVELOPMENT_KEY, False))

    def resolve(self, chain_id: int, development: bool = False) -> NetworkConfig:
        """
        Resolves the configuration for a chain. `development` is the network
        identity provider's flag; tables may additionally mark testnets.
        """
        chain_id = int(chain_id)
        entry = self.networks.get(chain_id)
        name = self.network_name(chain_id)
        deployer = _checksum(self.deployer, key="deployer", network=name)

        if self.is_development(chain_id, development):
            owner = deployer
            parameters = dict(self.development_defaults)
        elif entry is not None and OWNER_KEY in entry:
            owner = _checksum(entry[OWNER_KEY], key=OWNER_KEY, network=name)
            parameters = dict()
        else:
            raise UnrecognizedNetwork(chain_id)

        entry = entry or dict()
        parameters.update(entry.get(PARAMETERS_KEY) or dict())
        resolved_parameters = {
            key: _parameter(value, key=key, network=name) for key, value in parameters.items()
        }
        resolved_dependencies = {
            key: _checksum(value, key=key, network=name)
            for key, value in (entry.get(DEPENDENCIES_KEY) or dict()).items()
        }

        return NetworkConfig(
            chain_id=chain_id,
            name=name,
            development=self.is_development(chain_id, development),
            owner=owner,
            deployer=deployer,
            dependencies=MappingProxyType(resolved_dependencies),
            parameters=MappingProxyType(resolved_parameters),
        )
