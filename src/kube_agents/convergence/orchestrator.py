from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from .agents import AgentManager, DeployedAgents
from .config import EngineConfig
from .diagnostics import ActivityLog, DiagnosticsCoordinator, DiagnosticsReport, DiagnosticsScope
from .dsl.manifests import manifest_resources
from .dsl.model import Scenario
from .errors import ConvergenceTimeoutError, ScenarioError, SetupError, Stage, TriggerError
from .poller import ConvergencePoller
from .resources import ResourceStore
from .triggers import TriggerContext

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScenarioResult:
    scenario: str
    passed: bool = False
    duration: float = 0.0
    error: ScenarioError | None = None
    diagnostics: DiagnosticsReport | None = None

    @property
    def stage(self) -> Stage | None:
        return self.error.stage if self.error is not None else None


class ScenarioOrchestrator:
    """Run one scenario from setup to a converged (or failed) end state.

    Stages run strictly in order: apply setup manifests, deploy agents,
    fire the trigger, wait for convergence. The first failure ends the run
    with an error tagged by stage. Agents deployed by the run are stopped
    on every exit path, and a convergence failure gets a diagnostics report
    collected while the agents are still up.

    The orchestrator keeps no per-run state, so one instance can run many
    scenarios concurrently against a shared store and agent manager.
    """

    def __init__(
        self,
        store: ResourceStore,
        agents: AgentManager,
        *,
        activity: ActivityLog | None = None,
        config: EngineConfig | None = None,
        poller: ConvergencePoller | None = None,
        diagnostics: DiagnosticsCoordinator | None = None,
    ) -> None:
        self._store = store
        self._agents = agents
        self._config = config or EngineConfig()
        self._poller = poller or ConvergencePoller(
            store,
            interval=self._config.poll_interval,
            default_namespace=self._config.default_namespace,
        )
        self._diagnostics = diagnostics or DiagnosticsCoordinator(
            agents,
            activity,
            output_tail_lines=self._config.output_tail_lines,
            timeout=self._config.diagnostics_timeout,
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    async def run(
        self,
        scenario: Scenario,
        *,
        deadline: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> ScenarioResult:
        """Execute ``scenario`` and return its result.

        ``deadline`` is an absolute :func:`time.monotonic` value that caps the
        convergence wait in addition to the scenario timeout. Setting
        ``cancel`` stops the wait at the next wake-up; both surface as a
        timeout failure. Cancelling the task itself still stops the deployed
        agents and then propagates ``CancelledError``.
        """

        started = time.monotonic()
        result = ScenarioResult(scenario=scenario.name)
        logger.info("Running scenario %s", scenario.name)
        try:
            await self._execute(scenario, result, deadline, cancel)
        except ScenarioError as exc:
            result.error = exc
            logger.info("Scenario %s failed: %s", scenario.name, exc)
        else:
            result.passed = True
            logger.info("Scenario %s passed", scenario.name)
        finally:
            result.duration = time.monotonic() - started
        return result

    async def _execute(
        self,
        scenario: Scenario,
        result: ScenarioResult,
        deadline: float | None,
        cancel: asyncio.Event | None,
    ) -> None:
        await self._apply_setup(scenario)
        async with DeployedAgents(self._agents) as deployed:
            await deployed.deploy_all(scenario.agents)
            await self._fire_trigger(scenario, deployed)
            try:
                await self._await_convergence(scenario, deadline, cancel)
            except ConvergenceTimeoutError as exc:
                result.diagnostics = await self._diagnose(scenario, exc)
                raise

    async def _apply_setup(self, scenario: Scenario) -> None:
        for manifest in scenario.setup.manifests:
            logger.info("Applying manifest %s", manifest)
            try:
                resources = await asyncio.to_thread(
                    manifest_resources, manifest, self._config.default_namespace
                )
                for ref, document in resources:
                    await self._store.create_or_update(ref, document)
            except Exception as exc:
                msg = f"applying manifest {manifest}: {exc}"
                raise SetupError(msg, manifest=str(manifest)) from exc

    async def _fire_trigger(self, scenario: Scenario, deployed: DeployedAgents) -> None:
        trigger = scenario.trigger
        if trigger is None:
            return
        logger.info("Firing %s trigger", trigger.kind)
        context = TriggerContext(
            store=self._store,
            agents=deployed,
            default_namespace=self._config.default_namespace,
        )
        try:
            await trigger.fire(context)
        except Exception as exc:
            msg = f"applying {trigger.kind} trigger: {exc}"
            raise TriggerError(msg) from exc

    async def _await_convergence(
        self,
        scenario: Scenario,
        deadline: float | None,
        cancel: asyncio.Event | None,
    ) -> None:
        timeout = self._config.timeout_for(scenario.timeout)
        if deadline is not None:
            timeout = min(timeout, deadline - time.monotonic())
            if timeout <= 0:
                msg = "deadline passed before the convergence wait started"
                raise ConvergenceTimeoutError(msg, cancelled=True)
        logger.info("Waiting up to %gs for %s to converge", timeout, scenario.name)
        await self._poller.wait(scenario.expectations, timeout, cancel=cancel)

    async def _diagnose(
        self, scenario: Scenario, error: ConvergenceTimeoutError
    ) -> DiagnosticsReport:
        scope = DiagnosticsScope.for_scenario(scenario, self._config.default_namespace)
        mismatches = [error.last_mismatch] if error.last_mismatch is not None else []
        return await self._diagnostics.collect(scope, mismatches)
