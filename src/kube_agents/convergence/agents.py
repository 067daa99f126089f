from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from .errors import DeploymentError

logger = logging.getLogger(__name__)


class AgentManager(ABC):
    """Lifecycle control for the agents under test."""

    @abstractmethod
    async def deploy(self, name: str) -> None:
        """Start the named agent in the cluster."""

    @abstractmethod
    async def stop(self, name: str) -> None:
        """Stop the named agent. It can be started again with ``deploy``."""

    @abstractmethod
    async def stop_all(self) -> None:
        """Stop every agent this manager has deployed."""

    @abstractmethod
    async def fetch_recent_output(self, name: str) -> str:
        """Return the agent's output since it was last deployed."""


class DeployedAgents:
    """Tracks the agents deployed by one run and stops them on exit.

    Used as an async context manager around the part of a run that needs
    the agents. Only agents whose ``deploy`` call succeeded are stopped, in
    reverse deployment order, whatever way the block exits.
    """

    def __init__(self, manager: AgentManager) -> None:
        self._manager = manager
        self._deployed: list[str] = []

    @property
    def names(self) -> list[str]:
        return list(self._deployed)

    async def deploy_all(self, names: Iterable[str]) -> None:
        for name in names:
            logger.info("Deploying agent %s", name)
            try:
                await self._manager.deploy(name)
            except Exception as exc:
                msg = f"deploying agent {name}: {exc}"
                raise DeploymentError(msg, agent=name) from exc
            self._deployed.append(name)

    async def stop(self, name: str) -> None:
        await self._manager.stop(name)
        if name in self._deployed:
            self._deployed.remove(name)

    async def release(self) -> None:
        while self._deployed:
            name = self._deployed.pop()
            try:
                await self._manager.stop(name)
            except Exception:
                logger.warning("Failed to stop agent %s", name, exc_info=True)

    async def __aenter__(self) -> "DeployedAgents":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.release()
