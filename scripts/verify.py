from pathlib import Path

import click
from ape.cli import ConnectedProviderCommand, network_option

from vault_deployment.ape_environment import ExplorerVerifier, active_network, check_plugins
from vault_deployment.options import registry_filepath_option, units_filepath_option
from vault_deployment.params import UnitsConfig
from vault_deployment.registry import Registry


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--unit",
    "-u",
    "unit_names",
    help="Recorded unit to verify",
    type=click.STRING,
    required=True,
    multiple=True,
)
@units_filepath_option
@registry_filepath_option
def cli(network, unit_names, units_filepath, registry_filepath):
    """Publish the source of recorded deployments to the block explorer."""
    check_plugins(verify=True)
    registry_filepath = registry_filepath or UnitsConfig.from_yaml(units_filepath).registry_filepath
    chain_id = active_network().chain_id
    registry = Registry(Path(registry_filepath), chain_id=chain_id)

    records = []
    for unit_name in unit_names:
        record = registry.lookup(unit_name)
        if record is None:
            raise ValueError(
                f"Unit '{unit_name}' not found in registry, '{registry_filepath}', "
                f"for chain {chain_id}"
            )
        records.append(record)

    verifier = ExplorerVerifier()
    for record in records:
        verifier.verify(record)


if __name__ == "__main__":
    cli()
