from collections import OrderedDict
from enum import Enum
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional

from ape.utils import ZERO_ADDRESS

from vault_deployment.deployer import UnitDeployer
from vault_deployment.environment import ExecutionEnvironment, Verifier
from vault_deployment.exceptions import RegistryWriteError, UnavailableUnit, UnitError
from vault_deployment.networks import NetworkConfig, NetworkResolver
from vault_deployment.params import UnitsConfig
from vault_deployment.registry import DeploymentRecord, Registry
from vault_deployment.scheduler import Scheduler


class Status(Enum):
    DEPLOYED = "deployed"
    ALREADY_DEPLOYED = "already deployed"
    FAILED = "failed"
    PENDING = "pending"


class Outcome(NamedTuple):
    name: str
    status: Status
    record: Optional[DeploymentRecord] = None
    reason: Optional[str] = None
    stale: bool = False


class DeploymentReport:
    """Per-unit outcomes of a single orchestrator run."""

    def __init__(self, network: NetworkConfig, outcomes: List[Outcome]):
        self.network = network
        self.outcomes = outcomes

    def __getitem__(self, name: str) -> Outcome:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        raise KeyError(name)

    def __iter__(self):
        return iter(self.outcomes)

    def with_status(self, status: Status) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.status == status]

    @property
    def succeeded(self) -> bool:
        return not self.with_status(Status.FAILED)


class Orchestrator:
    """
    Deploys the requested units on one network, skipping any unit the
    registry already knows about, in dependency order. Stops at the first
    failed unit; everything already recorded stays valid and is skipped on
    the next run.
    """

    def __init__(
        self,
        units: UnitsConfig,
        resolver: NetworkResolver,
        environment: ExecutionEnvironment,
        registry_filepath: Path,
        verifier: Optional[Verifier] = None,
        autosign: bool = False,
    ):
        self.units = units
        self.resolver = resolver
        self.environment = environment
        self.registry_filepath = Path(registry_filepath)
        self.verifier = verifier
        self.autosign = autosign
        self.scheduler = Scheduler.from_units(units)

    def _select(
        self,
        config: NetworkConfig,
        unit_names: Optional[Iterable[str]],
        tags: Optional[Iterable[str]],
    ) -> List[str]:
        unit_names = list(unit_names or ())
        tags = list(tags or ())
        if not unit_names and not tags:
            return self.units.available(config.name, config.development)

        selected = set(self.units.with_tags(tags)) if tags else set()
        for name in unit_names:
            self.units[name]  # raises for undeclared units
            selected.add(name)
        return [name for name in self.units.names if name in selected]

    def _validate(
        self,
        order: List[str],
        requested: List[str],
        config: NetworkConfig,
        deployer: UnitDeployer,
        registry: Registry,
    ) -> None:
        """Eagerly checks every scheduled unit before anything is deployed."""
        for name in order:
            unit = self.units[name]
            if not unit.is_available(config.name, config.development):
                required_by = "" if name in requested else " (required as a dependency)"
                raise UnavailableUnit(
                    f"{name}{required_by} is not deployable on network '{config.name}'."
                )
            config.require(unit.config_keys())

        # units scheduled in this run are not deployed yet; validate with a placeholder
        def address_of(unit_name: str) -> str:
            return registry.address_of(unit_name) or ZERO_ADDRESS

        for name in order:
            deployer.validate(self.units[name], config, address_of)

    def _is_stale(self, deployer: UnitDeployer, name: str, record: DeploymentRecord) -> bool:
        try:
            stale = deployer.is_stale(self.units[name], record)
        except Exception as e:
            print(f"WARNING: could not compare {name} with its recorded deployment: {e}")
            return False
        if stale:
            print(
                f"WARNING: {name} at {record.address} was deployed from different code; "
                f"it will not be redeployed."
            )
        return stale

    def _print_run_info(self, config: NetworkConfig, order: List[str]) -> None:
        print(
            f"Network: {config.name}",
            f"Chain ID: {config.chain_id}",
            f"Development: {config.development}",
            f"Deployer: {config.deployer}",
            f"Owner: {config.owner}",
            f"Registry: {self.registry_filepath}",
            f"Units to deploy: {', '.join(order) or 'none'}",
            sep="\n",
        )

    @staticmethod
    def _fail(outcomes: OrderedDict, name: str, reason: str, remaining: List[str]) -> None:
        outcomes[name] = Outcome(name, Status.FAILED, reason=reason)
        for pending in remaining:
            outcomes[pending] = Outcome(
                pending, Status.PENDING, reason=f"not attempted; {name} failed"
            )

    def run(
        self,
        chain_id: int,
        development: bool = False,
        unit_names: Optional[Iterable[str]] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> DeploymentReport:
        config = self.resolver.resolve(chain_id, development)

        # a cycle anywhere is a descriptor bug; refuse to start
        self.scheduler.order(self.units.names)

        registry = Registry(self.registry_filepath, config.chain_id)
        deployer = UnitDeployer(
            environment=self.environment,
            registry=registry,
            verifier=self.verifier,
            autosign=self.autosign,
        )

        requested = self._select(config, unit_names, tags)
        outcomes = OrderedDict()
        for name in requested:
            record = registry.lookup(name)
            if record is not None:
                print(f"(i) {name} already deployed at {record.address}")
                stale = self._is_stale(deployer, name, record)
                outcomes[name] = Outcome(name, Status.ALREADY_DEPLOYED, record=record, stale=stale)

        satisfied = {record.name for record in registry.records()}
        order = self.scheduler.order(
            [name for name in requested if name not in outcomes], satisfied=satisfied
        )
        self._validate(order, requested, config, deployer, registry)
        self._print_run_info(config, order)

        for index, name in enumerate(order):
            try:
                record = deployer.deploy(self.units[name], config, registry.address_of)
            except UnitError as e:
                print(f"ERROR: {e}")
                self._fail(outcomes, name, str(e), order[index + 1 :])
                break
            except RegistryWriteError as e:
                # fatal to the run; surface what was deployed so far with the error
                print(f"ERROR: {e}")
                self._fail(outcomes, name, str(e), order[index + 1 :])
                e.report = DeploymentReport(network=config, outcomes=list(outcomes.values()))
                raise
            outcomes[name] = Outcome(name, Status.DEPLOYED, record=record)

        return DeploymentReport(network=config, outcomes=list(outcomes.values()))
