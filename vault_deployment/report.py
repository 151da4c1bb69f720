from typing import Dict, Iterable, List

import click

from vault_deployment.orchestrator import DeploymentReport, Status
from vault_deployment.registry import DeploymentRecord

STATUS_COLORS = {
    Status.DEPLOYED: "green",
    Status.ALREADY_DEPLOYED: "cyan",
    Status.FAILED: "red",
    Status.PENDING: "yellow",
}


def display_report(report: DeploymentReport) -> None:
    """Displays the outcome of every unit touched by a run."""
    network = report.network
    click.secho(f"\nDeployment report for {network.name} ({network.chain_id})", fg="green")
    for index, outcome in enumerate(report, start=1):
        line = f"    {index}. {outcome.name} {outcome.status.value.upper()}"
        if outcome.record:
            line += f" {outcome.record.address}"
        click.secho(line, fg=STATUS_COLORS[outcome.status])
        if outcome.stale:
            click.secho("        recorded code differs from current code", fg="yellow")
        if outcome.reason:
            click.secho(f"        {outcome.reason}", fg=STATUS_COLORS[outcome.status])


def exit_code(report: DeploymentReport) -> int:
    return 0 if report.succeeded else 1


def display_records(
    network_name: str,
    records: List[DeploymentRecord],
    orphans: List[Dict],
    stale: Iterable[str] = (),
) -> None:
    """Displays the recorded deployments and orphaned proxies of one chain."""
    click.secho(f"\n{network_name}", fg="green")
    if not records:
        click.secho("    No deployments recorded.", fg="yellow")
    for index, record in enumerate(records, start=1):
        line = f"    {index}. {record.name} {record.address}"
        if record.is_proxy:
            line += f" (proxy; implementation {record.implementation})"
        click.secho(line, fg="cyan")
        if record.name in stale:
            click.secho("        recorded code differs from current code", fg="yellow")

    for orphan in orphans:
        click.secho(
            f"    ! {orphan['name']} proxy at {orphan['address']} was never initialized",
            fg="red",
        )
