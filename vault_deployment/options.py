from pathlib import Path

import click

from vault_deployment.constants import NETWORKS_FILEPATH, UNITS_FILEPATH

unit_option = click.option(
    "--unit",
    "-u",
    "unit_names",
    help="Name of a unit to deploy; repeatable. Defaults to every unit available on the network.",
    type=click.STRING,
    multiple=True,
)

tag_option = click.option(
    "--tag",
    "-t",
    "tags",
    help="Deploy every unit carrying this tag; repeatable.",
    type=click.STRING,
    multiple=True,
)

units_filepath_option = click.option(
    "--units-filepath",
    help="Unit descriptors YAML",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=UNITS_FILEPATH,
    show_default=True,
)

networks_filepath_option = click.option(
    "--networks-filepath",
    help="Per-network configuration tables YAML",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=NETWORKS_FILEPATH,
    show_default=True,
)

registry_filepath_option = click.option(
    "--registry-filepath",
    "-f",
    help="Registry filepath; defaults to the artifact declared in the units file",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish source of deployed contracts to the block explorer",
    default=False,
    show_default=True,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without prompting",
    is_flag=True,
    default=False,
)
