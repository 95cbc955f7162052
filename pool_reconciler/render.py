"""Folding a reconciled resource back into a new cluster snapshot."""

from pool_reconciler.logging_config import get_logger
from pool_reconciler.models.cluster import ClusterSnapshot, PoolConfig, PoolRole
from pool_reconciler.models.resource import ResourceDescription

logger = get_logger(__name__)


def render_snapshot(
    resource: ResourceDescription,
    snapshot: ClusterSnapshot,
    role: PoolRole,
    kind: str = "droplet",
) -> ClusterSnapshot:
    """Return a copy of ``snapshot`` that records ``resource``.

    An existing pool with the resource's name has only its image, size, count,
    bootstrap scripts and role overwritten; otherwise a new pool is appended
    in the resource's region.
    The role always comes from the caller, never from provider data.
    """
    logger.debug(f"Rendering {resource.name} into snapshot {snapshot.name}")
    new_snapshot = snapshot.model_copy(deep=True)

    found = False
    for pool in new_snapshot.pools:
        if pool.name == resource.name:
            pool.image = resource.image
            pool.size = resource.size
            pool.max_count = resource.count
            pool.bootstrap_scripts = list(resource.bootstrap_scripts)
            pool.role = role
            found = True

    if not found:
        new_snapshot.pools.append(
            PoolConfig(
                name=resource.name,
                role=role,
                kind=kind,
                region=resource.region,
                image=resource.image,
                size=resource.size,
                max_count=resource.count,
                bootstrap_scripts=list(resource.bootstrap_scripts),
            )
        )

    new_snapshot.provider_config.location = resource.region
    return new_snapshot
