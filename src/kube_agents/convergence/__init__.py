"""Scenario execution engine for convergence tests of cluster agents."""

from .agents import AgentManager, DeployedAgents
from .cluster import ClusterConnection, ResourceStoreFactory
from .config import EngineConfig, SuiteConfig
from .diagnostics import (
    ActivityLog,
    ActivityRecord,
    DiagnosticsCoordinator,
    DiagnosticsReport,
    DiagnosticsScope,
    format_report,
)
from .dsl import Condition, Expectation, Scenario, Setup, load_scenario, load_scenario_dir
from .errors import (
    ConvergenceEvaluationError,
    ConvergenceTimeoutError,
    DeploymentError,
    DiagnosticsCollectionError,
    ScenarioError,
    SetupError,
    Stage,
    TriggerError,
)
from .orchestrator import ScenarioOrchestrator, ScenarioResult
from .paths import (
    NOT_FOUND,
    InvalidPathError,
    PathLookup,
    PathStructureError,
    lookup_path,
    values_equal,
)
from .poller import ConvergencePoller, Mismatch, MismatchReason
from .resources import ResourceRef, ResourceStore
from .suite import SuiteRunner, SuiteSummary, describe_result
from .triggers import CreateResourceTrigger, KillAgentTrigger, PatchTrigger, Trigger, TriggerContext

__all__ = [
    "ActivityLog",
    "ActivityRecord",
    "AgentManager",
    "ClusterConnection",
    "Condition",
    "ConvergenceEvaluationError",
    "ConvergencePoller",
    "ConvergenceTimeoutError",
    "CreateResourceTrigger",
    "DeployedAgents",
    "DeploymentError",
    "DiagnosticsCollectionError",
    "DiagnosticsCoordinator",
    "DiagnosticsReport",
    "DiagnosticsScope",
    "EngineConfig",
    "Expectation",
    "InvalidPathError",
    "KillAgentTrigger",
    "Mismatch",
    "MismatchReason",
    "NOT_FOUND",
    "PatchTrigger",
    "PathLookup",
    "PathStructureError",
    "ResourceRef",
    "ResourceStore",
    "ResourceStoreFactory",
    "Scenario",
    "ScenarioError",
    "ScenarioOrchestrator",
    "ScenarioResult",
    "Setup",
    "SetupError",
    "Stage",
    "SuiteConfig",
    "SuiteRunner",
    "SuiteSummary",
    "Trigger",
    "TriggerContext",
    "TriggerError",
    "describe_result",
    "format_report",
    "load_scenario",
    "load_scenario_dir",
    "lookup_path",
    "values_equal",
]
