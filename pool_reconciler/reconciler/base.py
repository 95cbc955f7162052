"""The four-phase reconciliation contract shared by every resource kind."""

from typing import NamedTuple, Protocol

from pool_reconciler.models.cluster import ClusterSnapshot
from pool_reconciler.models.resource import ResourceDescription


class PhaseResult(NamedTuple):
    """Outcome of one reconciliation phase."""

    snapshot: ClusterSnapshot
    resource: ResourceDescription


class Reconciler(Protocol):
    """Observe, plan, converge and destroy one pool of provider resources.

    Every phase returns a new snapshot and never mutates the one it receives.
    """

    def observe(self, snapshot: ClusterSnapshot) -> PhaseResult: ...

    def plan(self, snapshot: ClusterSnapshot) -> PhaseResult: ...

    def converge(
        self,
        actual: ResourceDescription,
        expected: ResourceDescription,
        snapshot: ClusterSnapshot,
        deadline: float | None = None,
    ) -> PhaseResult: ...

    def destroy(
        self,
        actual: ResourceDescription,
        snapshot: ClusterSnapshot,
        deadline: float | None = None,
    ) -> PhaseResult: ...
