"""Mutations that kick off the behaviour under test.

Each trigger kind is its own class with its own ``fire`` implementation, so
a new kind (fault injection, node drain, ...) only needs a new subclass and
a loader entry; the orchestrator just calls ``fire``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from .resources import ResourceRef, ResourceStore

if TYPE_CHECKING:
    from .agents import DeployedAgents

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TriggerContext:
    store: ResourceStore
    agents: DeployedAgents
    default_namespace: str


class Trigger(ABC):
    kind: ClassVar[str]

    @abstractmethod
    async def fire(self, context: TriggerContext) -> None:
        """Apply the mutation. Any exception fails the trigger stage."""


@dataclass(frozen=True, slots=True)
class PatchTrigger(Trigger):
    """Merge a partial document into an existing resource."""

    kind: ClassVar[str] = "patch"

    resource: ResourceRef
    partial: Mapping[str, Any] = field(default_factory=dict)

    async def fire(self, context: TriggerContext) -> None:
        ref = self.resource.with_default_namespace(context.default_namespace)
        logger.info("Patching %s", ref)
        await context.store.patch(ref, self.partial)


@dataclass(frozen=True, slots=True)
class CreateResourceTrigger(Trigger):
    """Create (or replace) a whole resource."""

    kind: ClassVar[str] = "create"

    document: Mapping[str, Any]

    async def fire(self, context: TriggerContext) -> None:
        ref = ResourceRef.from_document(self.document).with_default_namespace(
            context.default_namespace
        )
        logger.info("Creating %s", ref)
        await context.store.create_or_update(ref, self.document)


@dataclass(frozen=True, slots=True)
class KillAgentTrigger(Trigger):
    """Stop one of the agents deployed for the scenario."""

    kind: ClassVar[str] = "kill_agent"

    agent: str

    async def fire(self, context: TriggerContext) -> None:
        logger.info("Killing agent %s", self.agent)
        await context.agents.stop(self.agent)
