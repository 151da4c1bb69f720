import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, Callable, Iterator, List, NamedTuple, Optional, Tuple

from eth_typing import ChecksumAddress

from vault_deployment.constants import DEVELOPMENT_NETWORKS, UNITS_FILEPATH
from vault_deployment.exceptions import InvalidDescriptor, UnitNotDeployed, UnknownUnit
from vault_deployment.networks import NetworkConfig
from vault_deployment.utils import _load_yaml, validate_config

CONTRACT_KEY = "contract"
CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_PROXY_PARAMETER_KEY = "proxy"
PROXY_INITIALIZE_KEY = "initialize"
DEPENDENCIES_KEY = "dependencies"
TAGS_KEY = "tags"
NETWORKS_KEY = "networks"

DESCRIPTOR_KEYS = {
    CONTRACT_KEY,
    CONTRACT_CONSTRUCTOR_PARAMETER_KEY,
    CONTRACT_PROXY_PARAMETER_KEY,
    DEPENDENCIES_KEY,
    TAGS_KEY,
    NETWORKS_KEY,
}

AddressOf = Callable[[str], Optional[ChecksumAddress]]


class VariableContext:
    def __init__(self, unit_names: List[str], unit_name: str):
        self.unit_names = unit_names or list()
        self.unit_name = unit_name


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, config: NetworkConfig, address_of: AddressOf) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result

    def __eq__(self, other):
        return type(self) is type(other) and vars(self) == vars(other)

    def __hash__(self):
        return hash((type(self), tuple(sorted(vars(self).items()))))


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self, config: NetworkConfig, address_of: AddressOf) -> Any:
        return config.deployer

    def __repr__(self):
        return f"{self.VARIABLE_PREFIX}{self.DEPLOYER_INDICATOR}"


class Owner(Variable):
    OWNER_INDICATOR = "owner"

    @classmethod
    def is_owner(cls, value: str) -> bool:
        return value == cls.OWNER_INDICATOR

    def resolve(self, config: NetworkConfig, address_of: AddressOf) -> Any:
        return config.owner

    def __repr__(self):
        return f"{self.VARIABLE_PREFIX}{self.OWNER_INDICATOR}"


class ConfigValue(Variable):
    """A value looked up in the network configuration (e.g. $BOOK_MANAGER)."""

    def __init__(self, key: str):
        self.key = key

    @classmethod
    def is_config_value(cls, value: str) -> bool:
        return value.isupper()

    def resolve(self, config: NetworkConfig, address_of: AddressOf) -> Any:
        return config.lookup(self.key)

    def __repr__(self):
        return f"{self.VARIABLE_PREFIX}{self.key}"


class UnitAddress(Variable):
    """The address of a previously deployed unit (e.g. $Rebalancer)."""

    def __init__(self, unit_name: str, context: VariableContext):
        if unit_name not in context.unit_names:
            raise InvalidDescriptor(
                f"{context.unit_name} references unit '{unit_name}' which is not declared."
            )
        self.unit_name = unit_name

    def resolve(self, config: NetworkConfig, address_of: AddressOf) -> Any:
        address = address_of(self.unit_name)
        if address is None:
            raise UnitNotDeployed(self.unit_name)
        return address

    def __repr__(self):
        return f"{self.VARIABLE_PREFIX}{self.unit_name}"


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Owner.is_owner(variable):
        return Owner()
    elif ConfigValue.is_config_value(variable):
        return ConfigValue(variable)
    else:
        return UnitAddress(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: Any, variable_context: VariableContext) -> OrderedDict:
    if values is None:
        return OrderedDict()
    if not isinstance(values, dict):
        raise InvalidDescriptor(
            f"Malformed arguments for {variable_context.unit_name}; expected a name/value mapping."
        )
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


def _resolve_param(value: Any, config: NetworkConfig, address_of: AddressOf) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, config, address_of) for v in value]

    if isinstance(value, Variable):
        return value.resolve(config, address_of)

    return value  # literally a value


def _resolve_params(
    parameters: OrderedDict, config: NetworkConfig, address_of: AddressOf
) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value, config, address_of)

    return resolved_parameters


def _iter_variables(values: typing.Iterable[Any]) -> Iterator[Variable]:
    for value in values:
        if isinstance(value, list):
            yield from _iter_variables(value)
        elif isinstance(value, Variable):
            yield value


class Initializer(NamedTuple):
    """Initialization call made on a proxy immediately after it is deployed."""

    method: str
    args: OrderedDict


class UnitDescriptor(NamedTuple):
    """Static description of a single deployable unit."""

    name: str
    contract: str
    constructor: OrderedDict
    proxy: bool = False
    initializer: Optional[Initializer] = None
    dependencies: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    networks: Optional[Tuple[str, ...]] = None

    def _variables(self) -> Iterator[Variable]:
        yield from _iter_variables(self.constructor.values())
        if self.initializer:
            yield from _iter_variables(self.initializer.args.values())

    def config_keys(self) -> List[str]:
        """Network configuration keys this unit needs, in declaration order."""
        keys = [v.key for v in self._variables() if isinstance(v, ConfigValue)]
        return list(OrderedDict.fromkeys(keys))

    def referenced_units(self) -> List[str]:
        names = [v.unit_name for v in self._variables() if isinstance(v, UnitAddress)]
        return list(OrderedDict.fromkeys(names))

    def is_available(self, network_name: str, development: bool) -> bool:
        if self.networks is None:
            return True
        if development and DEVELOPMENT_NETWORKS in self.networks:
            return True
        return network_name in self.networks

    def resolve_constructor(self, config: NetworkConfig, address_of: AddressOf) -> OrderedDict:
        return _resolve_params(self.constructor, config, address_of)

    def resolve_initializer(self, config: NetworkConfig, address_of: AddressOf) -> OrderedDict:
        if not self.initializer:
            return OrderedDict()
        return _resolve_params(self.initializer.args, config, address_of)


def _as_names(value: Any, field: str, unit_name: str) -> Tuple[str, ...]:
    if value is None:
        return tuple()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidDescriptor(f"'{field}' of {unit_name} must be a list of names.")
    return tuple(value)


def _get_unit_names(config: typing.Dict) -> List[str]:
    unit_names = list()
    for unit_info in config["units"]:
        if isinstance(unit_info, str):
            unit_names.append(unit_info)
        elif isinstance(unit_info, dict) and len(unit_info) == 1:
            unit_names.extend(list(unit_info.keys()))
        else:
            raise InvalidDescriptor("Malformed units YAML.")

    duplicates = {name for name in unit_names if unit_names.count(name) > 1}
    if duplicates:
        raise InvalidDescriptor(f"Units declared more than once: {', '.join(sorted(duplicates))}")
    return unit_names


def _process_initializer(proxy_data: Any, context: VariableContext) -> Optional[Initializer]:
    proxy_data = proxy_data or dict()
    if not isinstance(proxy_data, dict):
        raise InvalidDescriptor(f"Malformed proxy declaration for {context.unit_name}.")
    initialize_data = proxy_data.get(PROXY_INITIALIZE_KEY)
    if initialize_data is None:
        return None
    if not isinstance(initialize_data, dict) or "method" not in initialize_data:
        raise InvalidDescriptor(
            f"Initializer of {context.unit_name} must declare a 'method' and its 'args'."
        )
    args = _process_raw_values(initialize_data.get("args"), context)
    return Initializer(method=initialize_data["method"], args=args)


def _process_descriptor(unit_name: str, unit_data: Any, unit_names: List[str]) -> UnitDescriptor:
    unit_data = unit_data or dict()
    if not isinstance(unit_data, dict):
        raise InvalidDescriptor(f"Malformed declaration for {unit_name}.")

    unexpected = set(unit_data) - DESCRIPTOR_KEYS
    if unexpected:
        raise InvalidDescriptor(
            f"Unexpected field(s) for {unit_name}: {', '.join(sorted(unexpected))}"
        )

    context = VariableContext(unit_names=unit_names, unit_name=unit_name)
    constructor = _process_raw_values(unit_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY), context)

    proxy = CONTRACT_PROXY_PARAMETER_KEY in unit_data
    initializer = None
    if proxy:
        initializer = _process_initializer(unit_data[CONTRACT_PROXY_PARAMETER_KEY], context)

    networks = None
    if NETWORKS_KEY in unit_data:
        networks = _as_names(unit_data[NETWORKS_KEY], NETWORKS_KEY, unit_name)

    descriptor = UnitDescriptor(
        name=unit_name,
        contract=unit_data.get(CONTRACT_KEY, unit_name),
        constructor=constructor,
        proxy=proxy,
        initializer=initializer,
        tags=_as_names(unit_data.get(TAGS_KEY), TAGS_KEY, unit_name),
        networks=networks,
    )

    declared = _as_names(unit_data.get(DEPENDENCIES_KEY), DEPENDENCIES_KEY, unit_name)
    for dependency in declared:
        if dependency not in unit_names:
            raise InvalidDescriptor(f"{unit_name} depends on undeclared unit '{dependency}'.")

    # units referenced by address are implicit dependencies
    dependencies = tuple(OrderedDict.fromkeys(declared + tuple(descriptor.referenced_units())))
    return descriptor._replace(dependencies=dependencies)


class UnitsConfig:
    """The declared deployment units, in declaration order."""

    def __init__(self, units: OrderedDict, registry_filepath: Optional[Path] = None):
        self.units = units
        self.registry_filepath = registry_filepath

    @classmethod
    def from_config(cls, config: typing.Dict) -> "UnitsConfig":
        registry_filepath = validate_config(config=config)
        print("Processing unit descriptors...")
        unit_names = _get_unit_names(config)
        units = OrderedDict()
        for unit_info in config["units"]:
            if isinstance(unit_info, str):
                unit_name, unit_data = unit_info, None
            else:
                unit_name = list(unit_info.keys())[0]  # only one entry
                unit_data = unit_info[unit_name]
            units[unit_name] = _process_descriptor(unit_name, unit_data, unit_names)

        return cls(units=units, registry_filepath=registry_filepath)

    @classmethod
    def from_yaml(cls, filepath: Path = UNITS_FILEPATH) -> "UnitsConfig":
        config = _load_yaml(filepath)
        return cls.from_config(config)

    @property
    def names(self) -> List[str]:
        return list(self.units)

    def __getitem__(self, unit_name: str) -> UnitDescriptor:
        try:
            return self.units[unit_name]
        except KeyError:
            raise UnknownUnit(f"No unit named '{unit_name}' is declared.")

    def __contains__(self, unit_name: str) -> bool:
        return unit_name in self.units

    def __iter__(self) -> Iterator[UnitDescriptor]:
        return iter(self.units.values())

    def with_tags(self, tags: typing.Iterable[str]) -> List[str]:
        """Names of units carrying any of the given tags, in declaration order."""
        tags = set(tags)
        names = [unit.name for unit in self if tags.intersection(unit.tags)]
        unmatched = tags - {tag for unit in self for tag in unit.tags}
        if unmatched:
            raise UnknownUnit(f"No unit is tagged {', '.join(sorted(unmatched))}.")
        return names

    def available(self, network_name: str, development: bool) -> List[str]:
        return [unit.name for unit in self if unit.is_available(network_name, development)]
