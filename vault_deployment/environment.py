"""Capabilities the orchestrator consumes but does not implement."""

from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Optional

from eth_typing import ChecksumAddress


class ExecutionEnvironment(ABC):
    """
    Submits deployments and calls to a network. Implementations retry
    transient failures internally and raise only on a terminal failure.
    """

    @abstractmethod
    def deploy(self, contract: str, *args) -> ChecksumAddress:
        """Deploys a contract with the given constructor arguments."""
        raise NotImplementedError

    @abstractmethod
    def deploy_proxy(self, contract: str, implementation: ChecksumAddress) -> ChecksumAddress:
        """Deploys an uninitialized upgradeable proxy in front of an implementation."""
        raise NotImplementedError

    @abstractmethod
    def transact(self, address: ChecksumAddress, contract: str, method: str, *args) -> None:
        raise NotImplementedError

    @abstractmethod
    def bytecode(self, contract: str) -> bytes:
        """Returns the creation bytecode of a contract type."""
        raise NotImplementedError

    @abstractmethod
    def validate(
        self,
        contract: str,
        constructor_args: OrderedDict,
        method: Optional[str] = None,
        initializer_args: Optional[OrderedDict] = None,
    ) -> None:
        """
        Checks named constructor (and initializer) arguments against the
        contract ABI; raises ValueError on any name, arity or type mismatch.
        """
        raise NotImplementedError


class Verifier(ABC):
    """Publishes source for deployed contracts on a block explorer."""

    @abstractmethod
    def verify(self, record) -> None:
        raise NotImplementedError
