from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..resources import ResourceRef
from ..triggers import CreateResourceTrigger, KillAgentTrigger, PatchTrigger, Trigger
from .schema import validate_scenario

SCENARIO_SUFFIXES = (".yaml", ".yml", ".json")

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True, slots=True)
class Condition:
    path: str
    value: str | bool | int | float


@dataclass(frozen=True, slots=True)
class Expectation:
    resource: ResourceRef
    conditions: tuple[Condition, ...]


@dataclass(frozen=True, slots=True)
class Setup:
    manifests: tuple[Path, ...] = ()


@dataclass(frozen=True, slots=True)
class Scenario:
    name: str
    agents: tuple[str, ...]
    setup: Setup = field(default_factory=Setup)
    trigger: Trigger | None = None
    expectations: tuple[Expectation, ...] = ()
    timeout: float = 0.0
    description: str | None = None
    source: Path | None = None


def parse_duration(value: str | int | float) -> float:
    """Convert ``"90s"``, ``"2m"``, ``"1h30m"`` or a number of seconds to seconds."""

    if isinstance(value, bool):
        msg = f"Invalid duration: {value!r}"
        raise ValueError(msg)
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip()
    if not text:
        msg = "Duration must not be empty"
        raise ValueError(msg)
    if text == "0":
        return 0.0
    total = 0.0
    position = 0
    for match in _DURATION_RE.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        msg = f"Invalid duration: {value!r}"
        raise ValueError(msg)
    return total


def read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def load_scenario(source: Path | Mapping[str, Any]) -> Scenario:
    if isinstance(source, Path):
        data = read_document(source)
        base_dir = source.parent
        origin: Path | None = source
    else:
        data = source
        base_dir = None
        origin = None
    if not isinstance(data, Mapping):
        msg = "Scenario document must be a mapping"
        raise ValueError(msg)
    validate_scenario(dict(data))

    setup_raw = data.get("setup") or {}
    manifests = tuple(
        _resolve_manifest(str(item), base_dir) for item in setup_raw.get("manifests", [])
    )

    trigger_raw = data.get("trigger")
    trigger = _parse_trigger(trigger_raw) if trigger_raw else None

    expectations = tuple(_parse_expectation(item) for item in data.get("expect", []))

    timeout_raw = data.get("timeout")
    timeout = parse_duration(timeout_raw) if timeout_raw is not None else 0.0

    return Scenario(
        name=data["name"],
        agents=tuple(data["agents"]),
        setup=Setup(manifests=manifests),
        trigger=trigger,
        expectations=expectations,
        timeout=timeout,
        description=data.get("description"),
        source=origin,
    )


def load_scenario_dir(directory: Path) -> list[Scenario]:
    """Load every scenario file in ``directory``, sorted by file name."""

    if not directory.is_dir():
        msg = f"Scenario directory not found: {directory}"
        raise ValueError(msg)

    scenarios: list[Scenario] = []
    seen: dict[str, Path] = {}
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix.lower() not in SCENARIO_SUFFIXES:
            continue
        try:
            scenario = load_scenario(path)
        except Exception as exc:
            msg = f"Invalid scenario {path.name}: {exc}"
            raise ValueError(msg) from exc
        if scenario.name in seen:
            msg = (
                f"Duplicate scenario name {scenario.name!r} in {path.name} "
                f"(already defined in {seen[scenario.name].name})"
            )
            raise ValueError(msg)
        seen[scenario.name] = path
        scenarios.append(scenario)
    return scenarios


def _resolve_manifest(reference: str, base_dir: Path | None) -> Path:
    path = Path(reference)
    if base_dir is not None and not path.is_absolute():
        return base_dir / path
    return path


def _parse_resource(payload: Mapping[str, Any]) -> ResourceRef:
    return ResourceRef(
        api_version=payload["apiVersion"],
        kind=payload["kind"],
        name=payload["name"],
        namespace=payload.get("namespace", ""),
    )


def _parse_trigger(payload: Mapping[str, Any]) -> Trigger:
    if "patch" in payload:
        raw = payload["patch"]
        partial = {key: raw[key] for key in ("metadata", "spec") if key in raw}
        return PatchTrigger(resource=_parse_resource(raw), partial=partial)
    if "create" in payload:
        return CreateResourceTrigger(document=payload["create"])
    if "kill_agent" in payload:
        return KillAgentTrigger(agent=payload["kill_agent"])
    msg = f"Unsupported trigger: {sorted(payload)}"
    raise ValueError(msg)


def _parse_expectation(payload: Mapping[str, Any]) -> Expectation:
    conditions = tuple(
        Condition(path=item["path"], value=item["value"])
        for item in payload.get("conditions", [])
    )
    return Expectation(resource=_parse_resource(payload["resource"]), conditions=conditions)

