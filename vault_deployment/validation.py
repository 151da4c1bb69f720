"""Checks resolved unit arguments against contract ABIs."""

import typing
from collections import OrderedDict
from typing import Any, List

from web3.auto import w3


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates the constructor parameters against the constructor ABI."""
    if len(resolved_parameters) != len(abi_inputs):
        raise ValueError(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, got {len(resolved_parameters)}."
        )
    if not abi_inputs:
        return  # no constructor parameters

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, resolved_input) in codex:
        name, value = resolved_input
        # validate name
        if abi_input.name != name:
            raise ValueError(
                f"{contract_name} constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input.name}'."
            )

        # validate value type
        if not w3.is_encodable(abi_input.type, value):
            raise ValueError(
                f"{contract_name} constructor param '{name}' at position {position} has a value "
                f"'{value}' whose type does not match expected ABI type '{abi_input.type}'"
            )


def _validate_method_abi_inputs(
    contract_name: str,
    method: str,
    method_abis: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates named method arguments against the overloads of a method."""
    if not method_abis:
        raise ValueError(f"{contract_name} has no method named '{method}'.")

    names = list(resolved_parameters)
    values = list(resolved_parameters.values())
    for abi in method_abis:
        if [abi_input.name for abi_input in abi.inputs] != names:
            continue
        if all(w3.is_encodable(i.type, value) for i, value in zip(abi.inputs, values)):
            return

    expected = " or ".join(
        f"({', '.join(abi_input.name for abi_input in abi.inputs)})" for abi in method_abis
    )
    raise ValueError(
        f"{contract_name}.{method} arguments ({', '.join(names)}) do not match "
        f"the ABI {expected} in name or type."
    )


def _validate_method_args(
    method_abis: List[Any], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )
