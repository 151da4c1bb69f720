from collections import OrderedDict

import pytest
from eth_utils import to_checksum_address

from vault_deployment.constants import UNITS_FILEPATH
from vault_deployment.environment import ExecutionEnvironment, Verifier
from vault_deployment.networks import NetworkResolver
from vault_deployment.orchestrator import Orchestrator
from vault_deployment.params import UnitsConfig

DEPLOYER = to_checksum_address("0x" + "de" * 20)
OWNER = to_checksum_address("0x" + "5a" * 20)
BOOK_MANAGER = to_checksum_address("0xC528b9ED5d56d1D0d3C18A2342954CE1069138a4")
SEQUENCER_ORACLE = to_checksum_address("0x8B0f27aDf87E037B53eF1AADB96bE629Be37CeA8")
DATASTREAM_VERIFIER = to_checksum_address("0x2ff010debc1297f19579b4246cad07bd24f2488a")

ARBITRUM = 42161
ARBITRUM_SEPOLIA = 421614
BASE = 8453
LOCAL = 31337
UNKNOWN_CHAIN = 999999

ONE_DAY = 24 * 60 * 60
ONE_HOUR = 60 * 60


class FakeEnvironment(ExecutionEnvironment):
    """Records every submission and hands out sequential addresses."""

    def __init__(self):
        self.deployments = []
        self.calls = []
        self.code = {}
        self.failing_deployments = set()
        self.failing_calls = set()
        self.failing_proxies = set()
        self.validations = []
        # contract -> expected constructor parameter names
        self.constructor_abis = {}
        self._nonce = 0

    def _next_address(self):
        self._nonce += 1
        return to_checksum_address(f"0x{self._nonce:040x}")

    def deploy(self, contract, *args):
        if contract in self.failing_deployments:
            raise RuntimeError("execution reverted")
        address = self._next_address()
        self.deployments.append((contract, args, address))
        return address

    def deploy_proxy(self, contract, implementation):
        if contract in self.failing_proxies:
            raise RuntimeError("proxy creation reverted")
        address = self._next_address()
        self.deployments.append(("ERC1967Proxy", (implementation,), address))
        return address

    def transact(self, address, contract, method, *args):
        if (contract, method) in self.failing_calls:
            raise RuntimeError(f"{method} reverted")
        self.calls.append((address, contract, method, args))

    def bytecode(self, contract):
        return self.code.get(contract, contract.encode())

    def validate(self, contract, constructor_args, method=None, initializer_args=None):
        self.validations.append((contract, OrderedDict(constructor_args), method))
        expected = self.constructor_abis.get(contract)
        if expected is not None and list(constructor_args) != expected:
            raise ValueError(f"{contract} constructor parameters do not match the ABI")

    @property
    def deployed_contracts(self):
        return [contract for contract, _, _ in self.deployments]


class FakeVerifier(Verifier):
    def __init__(self, fail=False):
        self.fail = fail
        self.verified = []

    def verify(self, record):
        if self.fail:
            raise ConnectionError("explorer unavailable")
        self.verified.append(record.name)


@pytest.fixture
def tables():
    return {
        "development_defaults": {
            "parameters": {"ORACLE_TIMEOUT": ONE_DAY, "SEQUENCER_GRACE_PERIOD": ONE_HOUR}
        },
        "networks": {
            ARBITRUM: {
                "name": "arbitrum",
                "owner": OWNER,
                "dependencies": {
                    "BOOK_MANAGER": BOOK_MANAGER,
                    "CHAINLINK_SEQUENCER_ORACLE": SEQUENCER_ORACLE,
                },
                "parameters": {"ORACLE_TIMEOUT": ONE_DAY, "SEQUENCER_GRACE_PERIOD": ONE_HOUR},
            },
            BASE: {
                "name": "base",
                "owner": OWNER,
                "dependencies": {"BOOK_MANAGER": BOOK_MANAGER},
            },
            ARBITRUM_SEPOLIA: {
                "name": "arbitrum-sepolia",
                "development": True,
                "dependencies": {
                    "BOOK_MANAGER": BOOK_MANAGER,
                    "CHAINLINK_SEQUENCER_ORACLE": SEQUENCER_ORACLE,
                    "DATASTREAM_VERIFIER": DATASTREAM_VERIFIER,
                },
            },
        },
    }


@pytest.fixture
def resolver(tables):
    return NetworkResolver(tables=tables, deployer=DEPLOYER)


@pytest.fixture(scope="session")
def units():
    return UnitsConfig.from_yaml(UNITS_FILEPATH)


@pytest.fixture
def environment():
    return FakeEnvironment()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def registry_filepath(tmp_path):
    return tmp_path / "artifacts" / "registry.json"


@pytest.fixture
def orchestrator(units, resolver, environment, registry_filepath, verifier):
    return Orchestrator(
        units=units,
        resolver=resolver,
        environment=environment,
        registry_filepath=registry_filepath,
        verifier=verifier,
        autosign=True,
    )
