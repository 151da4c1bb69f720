"""Exception hierarchy for the deployment orchestrator."""


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""


#
# Run-level errors: raised before any unit is deployed
#


class ConfigurationError(DeploymentError, ValueError):
    """Raised when network configuration or unit descriptors are unusable."""


class UnrecognizedNetwork(ConfigurationError):
    """Raised when a chain is neither a development network nor allow-listed."""

    def __init__(self, chain_id: int):
        self.chain_id = chain_id
        super().__init__(f"Unknown chain: {chain_id} is not a recognized deployment network.")


class MissingParameter(ConfigurationError):
    """Raised when a required configuration value is absent for a recognized network."""

    def __init__(self, key: str, network: str):
        self.key = key
        self.network = network
        super().__init__(f"'{key}' is not configured for network '{network}'.")


class UnknownUnit(ConfigurationError):
    """Raised when a unit name is not declared."""


class UnavailableUnit(ConfigurationError):
    """Raised when a unit is requested on a network it is not declared for."""


class InvalidDescriptor(ConfigurationError):
    """Raised when a unit descriptor is malformed."""


class CycleError(DeploymentError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.cycle)}")


class UnitNotDeployed(DeploymentError):
    """Raised when a unit's address is needed before the unit is recorded."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} has not been deployed")


#
# Unit-level errors: fatal to a single unit
#


class UnitError(DeploymentError):
    """Base exception for failures confined to a single unit."""

    def __init__(self, unit: str, message: str):
        self.unit = unit
        super().__init__(f"{unit}: {message}")


class UnresolvedArgument(UnitError):
    """Raised when an argument specification cannot be resolved."""


class DeployError(UnitError):
    """Raised when submitting a deployment fails."""


class InitializeError(UnitError):
    """Raised when initializing a freshly deployed proxy fails."""

    def __init__(self, unit: str, message: str, proxy_address=None):
        self.proxy_address = proxy_address
        super().__init__(unit, message)


#
# Registry errors
#


class AlreadyRecorded(DeploymentError):
    """Raised when attempting to overwrite an existing deployment record."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A deployment of '{name}' is already recorded.")


class RegistryWriteError(DeploymentError):
    """Raised when a deployment record cannot be persisted."""

    def __init__(self, record, reason: str):
        self.record = record
        # outcomes of the run up to this failure, attached by the orchestrator
        self.report = None
        super().__init__(
            f"Failed to record {record.name} deployed at {record.address}: {reason}. "
            f"The deployment is live but NOT recorded; add it to the registry manually "
            f"before running again."
        )
