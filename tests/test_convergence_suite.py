from __future__ import annotations

from pathlib import Path

import pytest

from conftest import TARGET, FakeAgentManager, FakeResourceStore, deployment
from kube_agents.convergence import (
    ClusterConnection,
    Condition,
    EngineConfig,
    Expectation,
    Scenario,
    ScenarioResult,
    SuiteConfig,
    SuiteRunner,
    SuiteSummary,
    describe_result,
)
from kube_agents.convergence.diagnostics import DiagnosticsReport
from kube_agents.convergence.errors import TriggerError

FAST = EngineConfig(poll_interval=0.01, default_timeout=0.05)


def replicas_are(count: int) -> tuple[Expectation, ...]:
    return (Expectation(resource=TARGET, conditions=(Condition(path=".spec.replicas", value=count),)),)


class CountingFactory:
    def __init__(self, store: FakeResourceStore) -> None:
        self.store = store
        self.connections: list[ClusterConnection] = []

    def __call__(self, connection: ClusterConnection) -> FakeResourceStore:
        self.connections.append(connection)
        return self.store


@pytest.mark.asyncio
async def test_suite_builds_store_once_and_keeps_input_order(store: FakeResourceStore) -> None:
    store.put(TARGET, deployment(replicas=3))
    factory = CountingFactory(store)
    agents = FakeAgentManager()
    connection = ClusterConnection(name="ci")
    runner = SuiteRunner(connection, factory, agents, config=FAST, suite_config=SuiteConfig(parallel=2))

    summary = await runner.run(
        [
            Scenario(name="three", agents=("a",), expectations=replicas_are(3)),
            Scenario(name="five", agents=("b",), expectations=replicas_are(5)),
            Scenario(name="three-again", agents=("c",), expectations=replicas_are(3)),
        ]
    )

    assert factory.connections == [connection]
    assert [result.scenario for result in summary.results] == ["three", "five", "three-again"]
    assert [result.passed for result in summary.results] == [True, False, True]
    assert (summary.total, summary.passed, summary.failed) == (3, 2, 1)
    assert summary.pass_rate == pytest.approx(2 / 3)
    assert agents.running == []


@pytest.mark.asyncio
async def test_suite_with_no_scenarios(store: FakeResourceStore) -> None:
    runner = SuiteRunner(ClusterConnection(), lambda _: store, FakeAgentManager(), config=FAST)

    summary = await runner.run([])

    assert summary.total == 0
    assert summary.pass_rate == 0.0


@pytest.mark.asyncio
async def test_suite_runs_scenario_directory(store: FakeResourceStore, tmp_path: Path) -> None:
    store.put(TARGET, deployment(replicas=3))
    scenario = """\
name: "{name}"
agents: [scaling-agent]
expect:
  - resource: {{apiVersion: apps/v1, kind: Deployment, name: target}}
    conditions:
      - path: .spec.replicas
        value: "{replicas}"
"""
    (tmp_path / "01.yaml").write_text(scenario.format(name="ok", replicas=3), encoding="utf-8")
    (tmp_path / "02.yaml").write_text(scenario.format(name="off", replicas=4), encoding="utf-8")
    runner = SuiteRunner(ClusterConnection(), lambda _: store, FakeAgentManager(), config=FAST)

    summary = await runner.run_dir(tmp_path)

    assert [(result.scenario, result.passed) for result in summary.results] == [
        ("ok", True),
        ("off", False),
    ]


def test_suite_config_requires_positive_parallelism() -> None:
    with pytest.raises(ValueError):
        SuiteConfig(parallel=0)


def test_engine_config_requires_positive_diagnostics_timeout() -> None:
    with pytest.raises(ValueError, match="diagnostics_timeout"):
        EngineConfig(diagnostics_timeout=0)


def test_summary_of_empty_results() -> None:
    assert SuiteSummary().failed == 0


def test_describe_result() -> None:
    passed = ScenarioResult(scenario="scale", passed=True, duration=1.234)
    failed = ScenarioResult(
        scenario="kill",
        duration=0.5,
        error=TriggerError("applying kill_agent trigger: agent 'x' is not deployed"),
        diagnostics=DiagnosticsReport(agent_output={"x": "bye"}),
    )

    assert describe_result(passed) == "scenario 'scale' passed in 1.23s"
    assert describe_result(failed).splitlines() == [
        "scenario 'kill' failed after 0.50s: trigger: applying kill_agent trigger: "
        "agent 'x' is not deployed",
        "--- agent x output ---",
        "bye",
    ]
