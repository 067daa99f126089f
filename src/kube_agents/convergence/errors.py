from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .poller import Mismatch


class Stage(str, Enum):
    """Run stage an error is attributed to."""

    SETUP = "setup"
    DEPLOYMENT = "deployment"
    TRIGGER = "trigger"
    ASSERTION = "assertion"


class ScenarioError(Exception):
    """Base class for failures that end a scenario run."""

    stage: Stage

    def __str__(self) -> str:
        return f"{self.stage.value}: {super().__str__()}"


class SetupError(ScenarioError):
    stage = Stage.SETUP

    def __init__(self, message: str, *, manifest: str | None = None) -> None:
        super().__init__(message)
        self.manifest = manifest


class DeploymentError(ScenarioError):
    stage = Stage.DEPLOYMENT

    def __init__(self, message: str, *, agent: str) -> None:
        super().__init__(message)
        self.agent = agent


class TriggerError(ScenarioError):
    stage = Stage.TRIGGER


class ConvergenceTimeoutError(ScenarioError, TimeoutError):
    """Expectations were still unmet when the deadline passed.

    ``last_mismatch`` is the most recent unmet condition observed by the
    poller, or ``None`` when no check completed before the deadline.
    ``cancelled`` is set when the wait was cut short by the caller rather
    than by the scenario timeout.
    """

    stage = Stage.ASSERTION

    def __init__(
        self,
        message: str,
        *,
        last_mismatch: Mismatch | None = None,
        cancelled: bool = False,
    ) -> None:
        super().__init__(message)
        self.last_mismatch = last_mismatch
        self.cancelled = cancelled


class ConvergenceEvaluationError(ConvergenceTimeoutError):
    """The last mismatch was a document shape conflict, not a value difference."""


class DiagnosticsCollectionError(Exception):
    """Raised by diagnostics sources; folded into the report, never propagated."""
