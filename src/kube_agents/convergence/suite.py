from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .agents import AgentManager
from .cluster import ClusterConnection, ResourceStoreFactory
from .config import EngineConfig, SuiteConfig
from .diagnostics import ActivityLog, format_report
from .dsl.model import Scenario, load_scenario_dir
from .orchestrator import ScenarioOrchestrator, ScenarioResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SuiteSummary:
    results: list[ScenarioResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def pass_rate(self) -> float:
        return self.passed / self.total if self.total else 0.0


class SuiteRunner:
    """Run many scenarios against one cluster with bounded parallelism.

    The resource store is built once from the connection and shared by
    every run.
    """

    def __init__(
        self,
        connection: ClusterConnection,
        store_factory: ResourceStoreFactory,
        agents: AgentManager,
        *,
        activity: ActivityLog | None = None,
        config: EngineConfig | None = None,
        suite_config: SuiteConfig | None = None,
    ) -> None:
        self._connection = connection
        self._suite_config = suite_config or SuiteConfig()
        store = store_factory(connection)
        self._orchestrator = ScenarioOrchestrator(
            store,
            agents,
            activity=activity,
            config=config,
        )

    @property
    def orchestrator(self) -> ScenarioOrchestrator:
        return self._orchestrator

    async def run(
        self,
        scenarios: Sequence[Scenario],
        *,
        cancel: asyncio.Event | None = None,
    ) -> SuiteSummary:
        if not scenarios:
            logger.warning("No scenarios to run")
            return SuiteSummary()

        semaphore = asyncio.Semaphore(self._suite_config.parallel)

        async def run_one(scenario: Scenario) -> ScenarioResult:
            async with semaphore:
                return await self._orchestrator.run(scenario, cancel=cancel)

        logger.info(
            "Running %d scenario(s) on %s (max %d parallel)",
            len(scenarios),
            self._connection.name,
            self._suite_config.parallel,
        )
        results = await asyncio.gather(*(run_one(scenario) for scenario in scenarios))
        summary = SuiteSummary(results=list(results))
        logger.info(
            "Suite finished: %d passed, %d failed (%.0f%%)",
            summary.passed,
            summary.failed,
            summary.pass_rate * 100,
        )
        return summary

    async def run_dir(
        self,
        directory: Path,
        *,
        cancel: asyncio.Event | None = None,
    ) -> SuiteSummary:
        return await self.run(load_scenario_dir(directory), cancel=cancel)


def describe_result(result: ScenarioResult) -> str:
    if result.passed:
        return f"scenario {result.scenario!r} passed in {result.duration:.2f}s"
    lines = [f"scenario {result.scenario!r} failed after {result.duration:.2f}s: {result.error}"]
    if result.diagnostics is not None:
        report = format_report(result.diagnostics)
        if report:
            lines.append(report)
    return "\n".join(lines)
