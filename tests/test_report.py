from tests.conftest import ARBITRUM_SEPOLIA
from vault_deployment.registry import Registry
from vault_deployment.report import display_records, display_report, exit_code


def test_successful_report(orchestrator, capsys):
    report = orchestrator.run(ARBITRUM_SEPOLIA, unit_names=["Rebalancer"])
    capsys.readouterr()

    display_report(report)
    output = capsys.readouterr().out

    assert "Deployment report for arbitrum-sepolia (421614)" in output
    assert f"1. Rebalancer DEPLOYED {report['Rebalancer'].record.address}" in output
    assert exit_code(report) == 0


def test_already_deployed_units_are_reported(orchestrator, capsys):
    orchestrator.run(ARBITRUM_SEPOLIA, unit_names=["Oracle"])
    report = orchestrator.run(ARBITRUM_SEPOLIA, unit_names=["Oracle"])
    capsys.readouterr()

    display_report(report)
    output = capsys.readouterr().out

    assert "1. Oracle ALREADY DEPLOYED" in output
    assert exit_code(report) == 0


def test_failed_report(orchestrator, environment, capsys):
    environment.failing_deployments.add("Rebalancer")
    report = orchestrator.run(ARBITRUM_SEPOLIA, unit_names=["Operator"])
    capsys.readouterr()

    display_report(report)
    output = capsys.readouterr().out

    assert "Rebalancer FAILED" in output
    assert "execution reverted" in output
    assert "Operator PENDING" in output
    assert "not attempted; Rebalancer failed" in output
    assert exit_code(report) == 1


def test_display_records(orchestrator, environment, registry_filepath, capsys):
    environment.failing_calls.add(("Operator", "initialize"))
    orchestrator.run(ARBITRUM_SEPOLIA, unit_names=["Operator"])
    registry = Registry(registry_filepath, chain_id=ARBITRUM_SEPOLIA)
    capsys.readouterr()

    display_records(
        "arbitrum-sepolia", registry.records(), registry.orphans(), stale={"Oracle"}
    )
    output = capsys.readouterr().out

    rebalancer = registry.lookup("Rebalancer")
    expected = (
        f"Rebalancer {rebalancer.address} "
        f"(proxy; implementation {rebalancer.implementation})"
    )
    assert expected in output
    assert "recorded code differs from current code" in output
    (orphan,) = registry.orphans()
    assert f"! Operator proxy at {orphan['address']} was never initialized" in output
