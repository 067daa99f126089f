from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .resources import ResourceStore


@dataclass(frozen=True, slots=True)
class ClusterConnection:
    """Handle to a provisioned cluster, as returned by a cluster provider.

    The engine only passes it to a :data:`ResourceStoreFactory`; creating and
    destroying the cluster is the provider's job.
    """

    kubeconfig: Path | None = None
    context: str | None = None
    name: str = "kube-agents-test"


ResourceStoreFactory = Callable[[ClusterConnection], ResourceStore]
