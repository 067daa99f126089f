from __future__ import annotations

from dataclasses import dataclass

from .resources import DEFAULT_NAMESPACE

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_TIMEOUT = 120.0
DEFAULT_OUTPUT_TAIL_LINES = 200
DEFAULT_DIAGNOSTICS_TIMEOUT = 10.0


@dataclass(slots=True)
class EngineConfig:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    default_timeout: float = DEFAULT_TIMEOUT
    default_namespace: str = DEFAULT_NAMESPACE
    output_tail_lines: int = DEFAULT_OUTPUT_TAIL_LINES
    diagnostics_timeout: float = DEFAULT_DIAGNOSTICS_TIMEOUT

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            msg = "poll_interval must be positive"
            raise ValueError(msg)
        if self.default_timeout <= 0:
            msg = "default_timeout must be positive"
            raise ValueError(msg)
        if self.output_tail_lines < 0:
            msg = "output_tail_lines must not be negative"
            raise ValueError(msg)
        if self.diagnostics_timeout <= 0:
            msg = "diagnostics_timeout must be positive"
            raise ValueError(msg)

    def timeout_for(self, scenario_timeout: float) -> float:
        return scenario_timeout if scenario_timeout > 0 else self.default_timeout


@dataclass(slots=True)
class SuiteConfig:
    parallel: int = 3

    def __post_init__(self) -> None:
        if self.parallel < 1:
            msg = "parallel must be at least 1"
            raise ValueError(msg)
