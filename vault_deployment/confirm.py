import sys
from collections import OrderedDict
from typing import Optional

from ape.utils import ZERO_ADDRESS


def _ask(question: str) -> None:
    """Aborts the process unless the operator answers yes."""
    answer = input(f"{question} Y/N? ")
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        sys.exit(-1)


def _continue() -> None:
    _ask("Continue")


def _print_params(title: str, params: OrderedDict) -> bool:
    """Prints resolved parameters and returns True if any is the zero address."""
    if not params:
        print(f"\n(i) No {title.lower()}")
        return False
    print(f"\n{title}")
    contains_zero_address = False
    for name, resolved_value in params.items():
        print(f"\t{name}={resolved_value}")
        contains_zero_address = contains_zero_address or resolved_value == ZERO_ADDRESS
    return contains_zero_address


def _confirm_resolution(
    unit_name: str,
    constructor_args: OrderedDict,
    initializer_method: Optional[str] = None,
    initializer_args: Optional[OrderedDict] = None,
) -> None:
    """Asks the operator to confirm the resolved arguments of a single unit."""
    zero_address = _print_params(f"Constructor parameters for {unit_name}", constructor_args)
    if initializer_method:
        zero_address |= _print_params(
            f"Proxy initializer {unit_name}.{initializer_method}", initializer_args or OrderedDict()
        )
    _ask(f"Deploy {unit_name}")
    if zero_address:
        _ask("Zero Address detected for deployment parameter; Continue?")
