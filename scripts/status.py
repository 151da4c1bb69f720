#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from vault_deployment.ape_environment import active_network, get_bytecode
from vault_deployment.deployer import is_stale
from vault_deployment.networks import NetworkResolver
from vault_deployment.options import (
    networks_filepath_option,
    registry_filepath_option,
    units_filepath_option,
)
from vault_deployment.params import UnitsConfig
from vault_deployment.registry import Registry
from vault_deployment.report import display_records


@click.command(cls=ConnectedProviderCommand, name="status")
@network_option(required=True)
@units_filepath_option
@networks_filepath_option
@registry_filepath_option
def cli(network, units_filepath, networks_filepath, registry_filepath):
    """List recorded deployments, code drift and orphaned proxies for the network."""
    identity = active_network()
    units = UnitsConfig.from_yaml(units_filepath)
    resolver = NetworkResolver.from_yaml(networks_filepath, deployer=None)
    registry = Registry(registry_filepath or units.registry_filepath, chain_id=identity.chain_id)

    records = registry.records()
    stale = {
        record.name
        for record in records
        if record.name in units and is_stale(units[record.name], record, get_bytecode)
    }

    network_name = f"{resolver.network_name(identity.chain_id)} ({identity.chain_id})"
    display_records(network_name, records=records, orphans=registry.orphans(), stale=stale)


if __name__ == "__main__":
    cli()
