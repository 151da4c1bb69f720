import builtins
from collections import OrderedDict

import pytest
from eth_utils import to_checksum_address

from tests.conftest import ARBITRUM_SEPOLIA, BOOK_MANAGER, DEPLOYER, FakeVerifier
from vault_deployment.deployer import UnitDeployer, is_stale
from vault_deployment.exceptions import (
    DeployError,
    InitializeError,
    InvalidDescriptor,
    RegistryWriteError,
    UnresolvedArgument,
)
from vault_deployment.registry import Registry
from vault_deployment.utils import fingerprint

ORACLE_ADDRESS = to_checksum_address("0x" + "0a" * 20)
REBALANCER_ADDRESS = to_checksum_address("0x" + "0b" * 20)


@pytest.fixture
def network(resolver):
    return resolver.resolve(ARBITRUM_SEPOLIA)


@pytest.fixture
def registry(registry_filepath):
    return Registry(registry_filepath, chain_id=ARBITRUM_SEPOLIA)


@pytest.fixture
def deployer(environment, registry, verifier):
    return UnitDeployer(
        environment=environment, registry=registry, verifier=verifier, autosign=True
    )


def test_deploy_plain_unit(deployer, environment, registry, verifier, units, network):
    addresses = {"Oracle": ORACLE_ADDRESS, "Rebalancer": REBALANCER_ADDRESS}
    record = deployer.deploy(units["SimpleOracleStrategy"], network, addresses.get)

    assert environment.deployments == [
        (
            "SimpleOracleStrategy",
            (ORACLE_ADDRESS, REBALANCER_ADDRESS, BOOK_MANAGER, DEPLOYER),
            record.address,
        )
    ]
    assert environment.calls == []
    assert not record.is_proxy
    assert record.initializer is None
    assert record.deployer == DEPLOYER
    assert record.fingerprint == fingerprint(b"SimpleOracleStrategy")
    assert record.constructor_args["oracle_"] == ORACLE_ADDRESS
    assert registry.lookup("SimpleOracleStrategy") == record
    assert verifier.verified == ["SimpleOracleStrategy"]


def test_deploy_proxy_unit(deployer, environment, registry, units, network):
    record = deployer.deploy(units["Rebalancer"], network, {}.get)

    (implementation, proxy) = environment.deployments
    assert implementation[0] == "Rebalancer"
    assert implementation[1] == (BOOK_MANAGER, 100, "Clober Liquidity Vault", "LV")
    assert proxy[0] == "ERC1967Proxy"
    assert proxy[1] == (implementation[2],)

    # initialized exactly once, on the proxy, after deployment
    assert environment.calls == [(proxy[2], "Rebalancer", "initialize", (DEPLOYER,))]

    assert record.address == proxy[2]
    assert record.implementation == implementation[2]
    assert record.initializer == {"method": "initialize", "args": {"initialOwner": DEPLOYER}}
    assert registry.lookup("Rebalancer") == record


def test_unit_contract_type_differs_from_name(deployer, environment, units, network):
    record = deployer.deploy(units["Oracle"], network, {}.get)
    assert environment.deployed_contracts == ["ChainlinkOracle"]
    assert record.name == "Oracle"
    assert record.contract == "ChainlinkOracle"


def test_unresolved_dependency_address(deployer, environment, registry, units, network):
    with pytest.raises(UnresolvedArgument) as error:
        deployer.deploy(units["Operator"], network, {"Rebalancer": REBALANCER_ADDRESS}.get)
    assert error.value.unit == "Operator"
    assert "SimpleOracleStrategy" in str(error.value)
    assert environment.deployments == []
    assert registry.lookup("Operator") is None


def test_unresolved_configuration(deployer, environment, resolver, units):
    local = resolver.resolve(31337, development=True)
    with pytest.raises(UnresolvedArgument):
        deployer.deploy(units["Rebalancer"], local, {}.get)
    assert environment.deployments == []


def test_failed_deployment_is_not_recorded(deployer, environment, registry, units, network):
    environment.failing_deployments.add("Rebalancer")
    with pytest.raises(DeployError) as error:
        deployer.deploy(units["Rebalancer"], network, {}.get)
    assert "execution reverted" in str(error.value)
    assert registry.lookup("Rebalancer") is None
    assert registry.orphans() == []


def test_failed_initialization_is_not_recorded(deployer, environment, registry, units, network):
    environment.failing_calls.add(("Rebalancer", "initialize"))
    with pytest.raises(InitializeError) as error:
        deployer.deploy(units["Rebalancer"], network, {}.get)

    (implementation, proxy) = environment.deployments
    assert error.value.proxy_address == proxy[2]
    assert registry.lookup("Rebalancer") is None
    assert registry.orphans() == [
        {"name": "Rebalancer", "address": proxy[2], "implementation": implementation[2]}
    ]


def test_registry_write_failure_is_surfaced(environment, units, network, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    registry = Registry(blocker / "registry.json", chain_id=ARBITRUM_SEPOLIA)
    deployer = UnitDeployer(environment=environment, registry=registry, autosign=True)

    with pytest.raises(RegistryWriteError) as error:
        deployer.deploy(units["Oracle"], network, {}.get)
    (deployment,) = environment.deployments
    assert error.value.record.address == deployment[2]


def test_concurrent_record_is_surfaced(deployer, registry, units, network):
    record = deployer.deploy(units["Oracle"], network, {}.get)
    with pytest.raises(RegistryWriteError):
        deployer.deploy(units["Oracle"], network, {}.get)
    assert registry.lookup("Oracle") == record


def test_verification_failure_is_not_fatal(environment, registry, units, network, capsys):
    deployer = UnitDeployer(
        environment=environment, registry=registry, verifier=FakeVerifier(fail=True), autosign=True
    )
    record = deployer.deploy(units["Oracle"], network, {}.get)
    assert registry.lookup("Oracle") == record
    assert "verification of Oracle" in capsys.readouterr().out


def test_operator_confirms_resolution(environment, registry, units, network, monkeypatch):
    answers = iter(["y"])
    monkeypatch.setattr(builtins, "input", lambda prompt: next(answers))
    deployer = UnitDeployer(environment=environment, registry=registry)
    deployer.deploy(units["Oracle"], network, {}.get)
    assert environment.deployed_contracts == ["ChainlinkOracle"]


def test_operator_aborts_deployment(environment, registry, units, network, monkeypatch):
    monkeypatch.setattr(builtins, "input", lambda prompt: "n")
    deployer = UnitDeployer(environment=environment, registry=registry)
    with pytest.raises(SystemExit):
        deployer.deploy(units["Oracle"], network, {}.get)
    assert environment.deployments == []
    assert registry.lookup("Oracle") is None


def test_stale_record_detection(deployer, environment, units, network):
    record = deployer.deploy(units["Oracle"], network, {}.get)
    assert not is_stale(units["Oracle"], record, environment.bytecode)

    environment.code["ChainlinkOracle"] = b"changed"
    assert deployer.is_stale(units["Oracle"], record)
    assert is_stale(units["Rebalancer"], record, environment.bytecode)


def test_literal_arguments_are_passed_through(deployer, environment, units, network):
    deployer.deploy(units["Rebalancer"], network, {}.get)
    constructor_args = environment.deployments[0][1]
    assert constructor_args[1:] == (100, "Clober Liquidity Vault", "LV")
    assert isinstance(units["Rebalancer"].constructor, OrderedDict)


def test_failed_proxy_deployment_reports_implementation(
    deployer, environment, registry, units, network
):
    environment.failing_proxies.add("Rebalancer")
    with pytest.raises(DeployError) as error:
        deployer.deploy(units["Rebalancer"], network, {}.get)

    (implementation,) = environment.deployments
    assert f"implementation left at {implementation[2]}" in str(error.value)
    assert "proxy creation reverted" in str(error.value)
    assert environment.calls == []
    assert registry.lookup("Rebalancer") is None


def test_unexpected_lookup_errors_propagate(deployer, environment, units, network):
    def broken_address_of(name):
        raise KeyError("registry entry without an address")

    with pytest.raises(KeyError):
        deployer.deploy(units["SimpleOracleStrategy"], network, broken_address_of)
    assert environment.deployments == []


def test_validate_passes_named_arguments(deployer, environment, units, network):
    deployer.validate(units["Rebalancer"], network, {}.get)

    ((contract, constructor_args, method),) = environment.validations
    assert contract == "Rebalancer"
    assert list(constructor_args) == ["bookManager_", "rebalanceFee_", "name_", "symbol_"]
    assert method == "initialize"
    assert environment.deployments == []


def test_validate_rejects_mismatched_arguments(deployer, environment, units, network):
    environment.constructor_abis["ChainlinkOracle"] = [
        "_sequencerOracle",
        "_gracePeriod",
        "_timeout",
        "_owner",
    ]
    with pytest.raises(InvalidDescriptor, match="Oracle: ChainlinkOracle constructor"):
        deployer.validate(units["Oracle"], network, {}.get)
    assert environment.deployments == []
