from collections import OrderedDict
from typing import Callable, Optional

from vault_deployment.confirm import _confirm_resolution
from vault_deployment.environment import ExecutionEnvironment, Verifier
from vault_deployment.exceptions import (
    AlreadyRecorded,
    DeployError,
    InitializeError,
    InvalidDescriptor,
    MissingParameter,
    RegistryWriteError,
    UnitNotDeployed,
    UnresolvedArgument,
)
from vault_deployment.networks import NetworkConfig
from vault_deployment.params import AddressOf, UnitDescriptor
from vault_deployment.registry import DeploymentRecord, Registry
from vault_deployment.utils import fingerprint


def is_stale(
    unit: UnitDescriptor, record: DeploymentRecord, bytecode: Callable[[str], bytes]
) -> bool:
    """True if the recorded deployment no longer matches the unit's current code."""
    if record.contract != unit.contract:
        return True
    return record.fingerprint != fingerprint(bytecode(unit.contract))


class UnitDeployer:
    """
    Deploys a single unit: resolve arguments, deploy, initialize (proxies
    only), then commit the record. A record is only written once every step
    has succeeded, so a failed unit stays pending for the next run.
    """

    def __init__(
        self,
        environment: ExecutionEnvironment,
        registry: Registry,
        verifier: Optional[Verifier] = None,
        autosign: bool = False,
    ):
        self.environment = environment
        self.registry = registry
        self.verifier = verifier
        self.autosign = autosign

    def fingerprint(self, unit: UnitDescriptor) -> str:
        return fingerprint(self.environment.bytecode(unit.contract))

    def is_stale(self, unit: UnitDescriptor, record: DeploymentRecord) -> bool:
        return is_stale(unit, record, self.environment.bytecode)

    def validate(self, unit: UnitDescriptor, config: NetworkConfig, address_of: AddressOf) -> None:
        """
        Checks the unit's named arguments against its contract ABI without
        submitting anything. Units that are not deployed yet must be given a
        placeholder address by `address_of`.
        """
        constructor_args = unit.resolve_constructor(config, address_of)
        initializer_args = unit.resolve_initializer(config, address_of)
        method = unit.initializer.method if unit.initializer else None
        try:
            self.environment.validate(unit.contract, constructor_args, method, initializer_args)
        except ValueError as e:
            raise InvalidDescriptor(f"{unit.name}: {e}") from e

    def deploy(
        self, unit: UnitDescriptor, config: NetworkConfig, address_of: AddressOf
    ) -> DeploymentRecord:
        try:
            constructor_args = unit.resolve_constructor(config, address_of)
            initializer_args = unit.resolve_initializer(config, address_of)
        except (MissingParameter, UnitNotDeployed) as e:
            raise UnresolvedArgument(unit.name, str(e)) from e

        method = unit.initializer.method if unit.initializer else None
        if not self.autosign:
            _confirm_resolution(unit.name, constructor_args, method, initializer_args)

        address, implementation, code_fingerprint = self._deploy(unit, constructor_args)

        if unit.initializer:
            self._initialize(unit, address, implementation, initializer_args)

        record = DeploymentRecord(
            chain_id=config.chain_id,
            name=unit.name,
            contract=unit.contract,
            address=address,
            constructor_args=constructor_args,
            fingerprint=code_fingerprint,
            deployer=config.deployer,
            implementation=implementation,
            initializer={"method": method, "args": dict(initializer_args)} if method else None,
        )
        try:
            self.registry.record(unit.name, record)
        except AlreadyRecorded as e:
            raise RegistryWriteError(record, reason=str(e)) from e

        self._verify(record)
        return record

    def _deploy(self, unit: UnitDescriptor, constructor_args: OrderedDict):
        print(f"\nDeploying {unit.name} ({unit.contract})...")
        try:
            code_fingerprint = self.fingerprint(unit)
            address = self.environment.deploy(unit.contract, *constructor_args.values())
        except Exception as e:
            raise DeployError(unit.name, f"deployment failed: {e}") from e

        implementation = None
        if unit.proxy:
            implementation = address
            print(f"Deploying proxy for {unit.name} (implementation at {implementation})...")
            try:
                address = self.environment.deploy_proxy(unit.contract, implementation)
            except Exception as e:
                raise DeployError(
                    unit.name,
                    f"proxy deployment failed; implementation left at {implementation}: {e}",
                ) from e

        print(f"(i) {unit.name} deployed at {address}")
        return address, implementation, code_fingerprint

    def _initialize(
        self,
        unit: UnitDescriptor,
        address: str,
        implementation: Optional[str],
        initializer_args: OrderedDict,
    ) -> None:
        method = unit.initializer.method
        print(f"Initializing {unit.name} via {method}...")
        try:
            self.environment.transact(address, unit.contract, method, *initializer_args.values())
        except Exception as e:
            try:
                self.registry.note_orphan(unit.name, address, implementation)
            except OSError as note_error:
                print(f"WARNING: could not note orphaned proxy {address}: {note_error}")
            raise InitializeError(
                unit.name, f"{method} failed on proxy {address}: {e}", proxy_address=address
            ) from e

    def _verify(self, record: DeploymentRecord) -> None:
        """Best effort; a failed verification never invalidates a deployment."""
        if self.verifier is None:
            return
        try:
            self.verifier.verify(record)
        except Exception as e:
            print(f"WARNING: verification of {record.name} at {record.address} failed: {e}")
