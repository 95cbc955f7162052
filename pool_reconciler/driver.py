"""Sequencing of reconciliation phases across the pools of a cluster."""

from typing import Any, NamedTuple

from pool_reconciler.compare import is_equal
from pool_reconciler.logging_config import get_logger
from pool_reconciler.models.cluster import ClusterSnapshot, PoolConfig, PoolRole
from pool_reconciler.models.resource import ResourceDescription
from pool_reconciler.reconciler.base import Reconciler
from pool_reconciler.reconciler.registry import get_reconciler_class

logger = get_logger(__name__)


class PoolOutcome(NamedTuple):
    """What happened to one pool during a cluster-wide pass."""

    pool: str
    actual: ResourceDescription
    expected: ResourceDescription
    result: ResourceDescription
    changed: bool


def build_reconciler(pool: PoolConfig, **kwargs: Any) -> Reconciler:
    """Instantiate the reconciler registered for the pool's kind."""
    return get_reconciler_class(pool.kind)(pool, **kwargs)


def reconcile_pool(
    reconciler: Reconciler, snapshot: ClusterSnapshot, deadline: float | None = None
) -> tuple[ClusterSnapshot, PoolOutcome]:
    """Observe, plan and, on mismatch, converge a single pool."""
    snapshot, actual = reconciler.observe(snapshot)
    snapshot, expected = reconciler.plan(snapshot)
    changed = not is_equal(actual, expected)
    snapshot, applied = reconciler.converge(actual, expected, snapshot, deadline=deadline)
    outcome = PoolOutcome(reconciler.pool.name, actual, expected, applied, changed)
    return snapshot, outcome


def reconcile_cluster(
    snapshot: ClusterSnapshot, deadline: float | None = None, **kwargs: Any
) -> tuple[ClusterSnapshot, list[PoolOutcome]]:
    """Reconcile every pool, masters first, threading the snapshot through.

    Extra keyword arguments are passed to each reconciler's constructor.
    """
    outcomes = []
    for name in _ordered_pool_names(snapshot, masters_first=True):
        pool = snapshot.get_pool(name)
        logger.info(f"Reconciling pool {name}")
        snapshot, outcome = reconcile_pool(build_reconciler(pool, **kwargs), snapshot, deadline)
        outcomes.append(outcome)
    return snapshot, outcomes


def teardown_cluster(
    snapshot: ClusterSnapshot, deadline: float | None = None, **kwargs: Any
) -> tuple[ClusterSnapshot, list[ResourceDescription]]:
    """Destroy every pool, node pools before masters."""
    deleted = []
    for name in _ordered_pool_names(snapshot, masters_first=False):
        pool = snapshot.get_pool(name)
        logger.info(f"Tearing down pool {name}")
        reconciler = build_reconciler(pool, **kwargs)
        snapshot, actual = reconciler.observe(snapshot)
        snapshot, resource = reconciler.destroy(actual, snapshot, deadline=deadline)
        deleted.append(resource)
    return snapshot, deleted


def _ordered_pool_names(snapshot: ClusterSnapshot, masters_first: bool) -> list[str]:
    masters = [p.name for p in snapshot.pools if p.role == PoolRole.MASTER]
    nodes = [p.name for p in snapshot.pools if p.role != PoolRole.MASTER]
    return masters + nodes if masters_first else nodes + masters
