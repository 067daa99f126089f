"""Best-effort evidence gathering for failed scenario runs."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Iterable, Sequence, TypeVar

from .agents import AgentManager
from .config import DEFAULT_DIAGNOSTICS_TIMEOUT, DEFAULT_OUTPUT_TAIL_LINES
from .dsl.model import Scenario
from .poller import Mismatch

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class DiagnosticsScope:
    namespace: str
    agents: tuple[str, ...]

    @classmethod
    def for_scenario(cls, scenario: Scenario, default_namespace: str) -> DiagnosticsScope:
        namespace = next(
            (exp.resource.namespace for exp in scenario.expectations if exp.resource.namespace),
            default_namespace,
        )
        return cls(namespace=namespace, agents=scenario.agents)


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """A cluster event, e.g. ``Warning FailedScheduling pod/web-0: ...``."""

    reason: str
    message: str
    involved: str = ""
    event_type: str = "Normal"

    def __str__(self) -> str:
        subject = f" {self.involved}" if self.involved else ""
        return f"{self.event_type} {self.reason}{subject}: {self.message}"


@dataclass(slots=True)
class DiagnosticsReport:
    agent_output: dict[str, str] = field(default_factory=dict)
    events: list[ActivityRecord] = field(default_factory=list)
    mismatches: list[Mismatch] = field(default_factory=list)
    collection_error: str | None = None


class ActivityLog(ABC):
    """Source of recent cluster activity records."""

    @abstractmethod
    async def fetch_events(self, namespace: str) -> Sequence[ActivityRecord]:
        """Return recent events in ``namespace``.

        Implementations should raise
        :class:`~kube_agents.convergence.errors.DiagnosticsCollectionError`
        (or any other exception) when the events cannot be read.
        """


class DiagnosticsCoordinator:
    """Assemble a :class:`DiagnosticsReport` without ever raising.

    Per-agent output failures become inline placeholders; an activity log
    failure sets ``collection_error`` and leaves ``events`` empty. Every
    fetch is bounded by ``timeout`` and a fetch that runs over counts as a
    failure.
    """

    def __init__(
        self,
        agents: AgentManager,
        activity: ActivityLog | None = None,
        *,
        output_tail_lines: int = DEFAULT_OUTPUT_TAIL_LINES,
        timeout: float = DEFAULT_DIAGNOSTICS_TIMEOUT,
    ) -> None:
        self._agents = agents
        self._activity = activity
        self._output_tail_lines = output_tail_lines
        self._timeout = timeout

    async def collect(
        self,
        scope: DiagnosticsScope,
        mismatches: Iterable[Mismatch] = (),
    ) -> DiagnosticsReport:
        report = DiagnosticsReport(mismatches=list(mismatches))

        for name in scope.agents:
            try:
                output = await self._bounded(self._agents.fetch_recent_output(name))
            except Exception as exc:
                reason = self._describe_failure(exc)
                logger.warning("Could not fetch output for agent %s: %s", name, reason)
                report.agent_output[name] = f"<unavailable: {reason}>"
                continue
            report.agent_output[name] = tail_lines(output, self._output_tail_lines)

        if self._activity is not None:
            try:
                events = await self._bounded(self._activity.fetch_events(scope.namespace))
            except Exception as exc:
                reason = self._describe_failure(exc)
                logger.warning("Could not fetch events in namespace %s: %s", scope.namespace, reason)
                report.collection_error = f"fetching events in namespace {scope.namespace}: {reason}"
            else:
                report.events = list(events)

        return report

    async def _bounded(self, fetch: Awaitable[T]) -> T:
        return await asyncio.wait_for(fetch, timeout=self._timeout)

    def _describe_failure(self, exc: Exception) -> str:
        if isinstance(exc, asyncio.TimeoutError):
            return f"timed out after {self._timeout:g}s"
        return str(exc) or type(exc).__name__


def tail_lines(text: str, limit: int) -> str:
    if limit <= 0:
        return ""
    lines = text.splitlines()
    if len(lines) <= limit:
        return text
    return "\n".join(lines[-limit:])


def format_report(report: DiagnosticsReport) -> str:
    lines: list[str] = []
    if report.collection_error:
        lines.append(f"diagnostics collection error: {report.collection_error}")
    for mismatch in report.mismatches:
        lines.append(f"mismatch: {mismatch}")
    for record in report.events:
        lines.append(f"event: {record}")
    for name, output in report.agent_output.items():
        lines.append(f"--- agent {name} output ---")
        lines.append(output)
    return "\n".join(lines)
