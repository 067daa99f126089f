from __future__ import annotations

from .manifests import manifest_resources, read_manifest
from .model import (
    Condition,
    Expectation,
    Scenario,
    Setup,
    load_scenario,
    load_scenario_dir,
    parse_duration,
)
from .schema import SCENARIO_SCHEMA, validate_scenario

__all__ = [
    "Condition",
    "Expectation",
    "Scenario",
    "Setup",
    "load_scenario",
    "load_scenario_dir",
    "manifest_resources",
    "parse_duration",
    "read_manifest",
    "SCENARIO_SCHEMA",
    "validate_scenario",
]
