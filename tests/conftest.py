from __future__ import annotations

import copy
from typing import Any, Callable, Mapping, Sequence

import pytest

from kube_agents.convergence import (
    ActivityLog,
    ActivityRecord,
    AgentManager,
    DiagnosticsCollectionError,
    ResourceRef,
    ResourceStore,
)


def _key(ref: ResourceRef) -> tuple[str, str, str, str]:
    return (ref.api_version, ref.kind, ref.namespace, ref.name)


def merge_patch(target: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in patch.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, Mapping) and isinstance(target.get(key), dict):
            merge_patch(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class FakeResourceStore(ResourceStore):
    """Dict-backed store; ``on_fetch`` lets a test play the agents' part."""

    def __init__(self) -> None:
        self.documents: dict[tuple[str, str, str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, ResourceRef]] = []
        self.failures: dict[str, Exception] = {}
        self.on_fetch: Callable[[FakeResourceStore, ResourceRef], None] | None = None

    def put(self, ref: ResourceRef, document: Mapping[str, Any]) -> None:
        self.documents[_key(ref)] = copy.deepcopy(dict(document))

    def get(self, ref: ResourceRef) -> dict[str, Any]:
        return self.documents[_key(ref)]

    def calls_of(self, operation: str) -> list[ResourceRef]:
        return [ref for op, ref in self.calls if op == operation]

    async def create_or_update(self, ref: ResourceRef, document: Mapping[str, Any]) -> None:
        self.calls.append(("create_or_update", ref))
        if "create_or_update" in self.failures:
            raise self.failures["create_or_update"]
        self.put(ref, document)

    async def patch(self, ref: ResourceRef, partial: Mapping[str, Any]) -> None:
        self.calls.append(("patch", ref))
        if "patch" in self.failures:
            raise self.failures["patch"]
        if _key(ref) not in self.documents:
            raise LookupError(f"{ref.label} not found")
        merge_patch(self.documents[_key(ref)], partial)

    async def fetch(self, ref: ResourceRef) -> Mapping[str, Any]:
        self.calls.append(("fetch", ref))
        if self.on_fetch is not None:
            self.on_fetch(self, ref)
        if "fetch" in self.failures:
            raise self.failures["fetch"]
        if _key(ref) not in self.documents:
            raise LookupError(f"{ref.label} not found")
        return copy.deepcopy(self.documents[_key(ref)])


class FakeAgentManager(AgentManager):
    def __init__(
        self,
        *,
        failing: Sequence[str] = (),
        outputs: Mapping[str, str] | None = None,
    ) -> None:
        self.running: list[str] = []
        self.deployed: list[str] = []
        self.stopped: list[str] = []
        self.failing = set(failing)
        self.outputs = dict(outputs or {})
        self.output_requests: list[tuple[str, bool]] = []

    async def deploy(self, name: str) -> None:
        if name in self.failing:
            raise RuntimeError(f"image pull failed for {name}")
        self.deployed.append(name)
        self.running.append(name)

    async def stop(self, name: str) -> None:
        if name not in self.running:
            raise RuntimeError(f"agent {name!r} is not deployed")
        self.running.remove(name)
        self.stopped.append(name)

    async def stop_all(self) -> None:
        for name in list(self.running):
            await self.stop(name)

    async def fetch_recent_output(self, name: str) -> str:
        self.output_requests.append((name, name in self.running))
        if name not in self.outputs:
            raise RuntimeError(f"no pods found for {name}")
        return self.outputs[name]


class FakeActivityLog(ActivityLog):
    def __init__(
        self,
        records: Sequence[ActivityRecord] = (),
        *,
        error: Exception | None = None,
    ) -> None:
        self.records = list(records)
        self.error = error
        self.namespaces: list[str] = []

    async def fetch_events(self, namespace: str) -> Sequence[ActivityRecord]:
        self.namespaces.append(namespace)
        if self.error is not None:
            raise self.error
        return self.records


TARGET = ResourceRef(api_version="apps/v1", kind="Deployment", name="target", namespace="default")


def deployment(name: str = "target", *, replicas: int = 3, ready: Any = 3) -> dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": "default"},
        "spec": {"replicas": replicas},
        "status": {"readyReplicas": ready},
    }


@pytest.fixture()
def store() -> FakeResourceStore:
    return FakeResourceStore()


@pytest.fixture()
def agent_manager() -> FakeAgentManager:
    return FakeAgentManager(outputs={"scaling-agent": "scaled target to 5", "quota-agent": "quota ok"})


@pytest.fixture()
def broken_activity_log() -> FakeActivityLog:
    return FakeActivityLog(error=DiagnosticsCollectionError("events API unavailable"))
