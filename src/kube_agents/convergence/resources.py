from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

DEFAULT_NAMESPACE = "default"


@dataclass(frozen=True, slots=True)
class ResourceRef:
    """Identifies a single resource in the target cluster."""

    api_version: str
    kind: str
    name: str
    namespace: str = ""

    def __post_init__(self) -> None:
        if not self.kind:
            msg = "ResourceRef.kind must not be empty"
            raise ValueError(msg)
        if not self.name:
            msg = "ResourceRef.name must not be empty"
            raise ValueError(msg)

    @property
    def label(self) -> str:
        return f"{self.kind.lower()}/{self.name}"

    def with_default_namespace(self, namespace: str) -> ResourceRef:
        if self.namespace:
            return self
        return ResourceRef(
            api_version=self.api_version,
            kind=self.kind,
            name=self.name,
            namespace=namespace,
        )

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> ResourceRef:
        metadata = document.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            msg = "Resource metadata must be a mapping"
            raise ValueError(msg)
        return cls(
            api_version=str(document.get("apiVersion", "")),
            kind=str(document.get("kind", "")),
            name=str(metadata.get("name", "")),
            namespace=str(metadata.get("namespace", "")),
        )

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.label} (namespace {self.namespace})"
        return self.label


class ResourceStore(ABC):
    """Read/write access to structured resources in the target cluster.

    Implementations must be safe for concurrent use by several scenario
    runs. Every method raises on failure; the engine decides which failures
    are fatal.
    """

    @abstractmethod
    async def create_or_update(self, ref: ResourceRef, document: Mapping[str, Any]) -> None:
        """Create the resource, or replace it if it already exists."""

    @abstractmethod
    async def patch(self, ref: ResourceRef, partial: Mapping[str, Any]) -> None:
        """Merge ``partial`` into the existing resource."""

    @abstractmethod
    async def fetch(self, ref: ResourceRef) -> Mapping[str, Any]:
        """Return the current document for ``ref``."""
