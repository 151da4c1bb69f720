"""ape-backed implementations of the orchestrator's collaborators."""

import os
from collections import OrderedDict
from typing import List, NamedTuple, Optional

from ape import accounts, networks, project
from ape.api import AccountAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer
from eth_typing import ChecksumAddress
from eth_utils import to_bytes, to_checksum_address
from ethpm_types import MethodABI

from vault_deployment.constants import (
    LOCAL_NETWORKS,
    OZ_DEPENDENCY_NAME,
    OZ_DEPENDENCY_VERSION,
    PROXY_CONTRACT,
)
from vault_deployment.environment import ExecutionEnvironment, Verifier
from vault_deployment.validation import (
    _validate_constructor_abi_inputs,
    _validate_method_abi_inputs,
    _validate_method_args,
)


class NetworkIdentity(NamedTuple):
    chain_id: int
    name: str
    development: bool


def is_local_network() -> bool:
    return networks.provider.network.name in LOCAL_NETWORKS


def active_network() -> NetworkIdentity:
    """Identifies the network of the connected provider."""
    network = networks.provider.network
    return NetworkIdentity(
        chain_id=network.chain_id, name=network.name, development=is_local_network()
    )


def get_deployer_account() -> AccountAPI:
    if is_local_network():
        return accounts.test_accounts[0]
    return select_account()


def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    try:
        from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to verify contracts.")
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    if not os.environ.get(explorer_envvar or ""):
        raise ValueError(f"{explorer_envvar} is not set.")


def check_plugins(verify: bool) -> None:
    print("Checking plugins...")
    if verify:
        check_etherscan_plugin()


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            return getattr(dependency_api, contract)
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def get_bytecode(contract: str) -> bytes:
    """Returns the creation bytecode of a compiled contract type."""
    deployment_bytecode = get_contract_container(contract).contract_type.deployment_bytecode
    return to_bytes(hexstr=deployment_bytecode.bytecode)


class ApeEnvironment(ExecutionEnvironment):
    """Deploys and transacts with an ape account on the connected network."""

    def __init__(self, account: Optional[AccountAPI] = None, autosign: bool = False):
        self.account = account or get_deployer_account()
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
            self.account.set_autosign(autosign)

    @property
    def address(self) -> ChecksumAddress:
        return to_checksum_address(self.account.address)

    def deploy(self, contract: str, *args) -> ChecksumAddress:
        container = get_contract_container(contract)
        instance = self.account.deploy(container, *args)
        return to_checksum_address(instance.address)

    def deploy_proxy(self, contract: str, implementation: ChecksumAddress) -> ChecksumAddress:
        oz_dependency = project.dependencies[OZ_DEPENDENCY_NAME][OZ_DEPENDENCY_VERSION]
        proxy_container = getattr(oz_dependency, PROXY_CONTRACT)
        proxy = self.account.deploy(proxy_container, implementation, b"")
        return to_checksum_address(proxy.address)

    def transact(self, address: ChecksumAddress, contract: str, method: str, *args) -> None:
        instance = get_contract_container(contract).at(address)
        handler = getattr(instance, method)
        _validate_method_args(method_abis=handler.abis, args=args)
        handler(*args, sender=self.account)

    def bytecode(self, contract: str) -> bytes:
        return get_bytecode(contract)

    def validate(
        self,
        contract: str,
        constructor_args: OrderedDict,
        method: Optional[str] = None,
        initializer_args: Optional[OrderedDict] = None,
    ) -> None:
        container = get_contract_container(contract)
        _validate_constructor_abi_inputs(
            contract_name=contract,
            abi_inputs=container.constructor.abi.inputs,
            resolved_parameters=constructor_args,
        )
        if method:
            method_abis: List[MethodABI] = [
                abi for abi in container.contract_type.methods if abi.name == method
            ]
            _validate_method_abi_inputs(
                contract_name=contract,
                method=method,
                method_abis=method_abis,
                resolved_parameters=initializer_args or OrderedDict(),
            )


class ExplorerVerifier(Verifier):
    """Publishes contract source to the network's block explorer."""

    def verify(self, record) -> None:
        explorer = networks.provider.network.explorer
        if explorer is None:
            raise ValueError(f"No explorer configured for {networks.provider.network.name}")
        for address in record.published_addresses:
            print(f"(i) Verifying {record.name} at {address}...")
            explorer.publish_contract(address)
