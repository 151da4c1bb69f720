#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from vault_deployment.ape_environment import (
    ApeEnvironment,
    ExplorerVerifier,
    active_network,
    check_plugins,
    is_local_network,
)
from vault_deployment.exceptions import DeploymentError, RegistryWriteError
from vault_deployment.networks import NetworkResolver
from vault_deployment.options import (
    autosign_option,
    networks_filepath_option,
    registry_filepath_option,
    tag_option,
    unit_option,
    units_filepath_option,
    verify_option,
)
from vault_deployment.orchestrator import Orchestrator
from vault_deployment.params import UnitsConfig
from vault_deployment.report import display_report, exit_code
from vault_deployment.utils import get_registry_filepath


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@unit_option
@tag_option
@units_filepath_option
@networks_filepath_option
@registry_filepath_option
@verify_option
@autosign_option
def cli(
    network,
    unit_names,
    tags,
    units_filepath,
    networks_filepath,
    registry_filepath,
    verify,
    autosign,
):
    """Deploy every requested unit that is not yet recorded, in dependency order."""
    check_plugins(verify=verify)
    identity = active_network()
    environment = ApeEnvironment(autosign=autosign)

    units = UnitsConfig.from_yaml(units_filepath)
    resolver = NetworkResolver.from_yaml(networks_filepath, deployer=environment.address)
    orchestrator = Orchestrator(
        units=units,
        resolver=resolver,
        environment=environment,
        registry_filepath=get_registry_filepath(
            default=units.registry_filepath,
            override=registry_filepath,
            local=is_local_network(),
        ),
        verifier=ExplorerVerifier() if verify else None,
        autosign=autosign,
    )

    try:
        report = orchestrator.run(
            chain_id=identity.chain_id,
            development=identity.development,
            unit_names=unit_names,
            tags=tags,
        )
    except RegistryWriteError as e:
        if e.report is not None:
            display_report(e.report)
        click.secho(f"Deployment aborted: {e}", fg="red")
        raise click.exceptions.Exit(1)
    except DeploymentError as e:
        click.secho(f"Deployment aborted: {e}", fg="red")
        raise click.exceptions.Exit(1)

    display_report(report)
    raise click.exceptions.Exit(exit_code(report))


if __name__ == "__main__":
    cli()
