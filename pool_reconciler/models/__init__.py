"""Data models for the cluster snapshot and reconciled resources."""

from pool_reconciler.models.cluster import (
    ClusterSnapshot,
    Components,
    KubernetesAPIConfig,
    PoolConfig,
    PoolRole,
    ProviderConfig,
    SSHConfig,
)
from pool_reconciler.models.facts import ClusterFacts
from pool_reconciler.models.resource import (
    InstanceCreateSpec,
    ProvisionedInstance,
    ResourceDescription,
)

__all__ = [
    "ClusterFacts",
    "ClusterSnapshot",
    "Components",
    "InstanceCreateSpec",
    "KubernetesAPIConfig",
    "PoolConfig",
    "PoolRole",
    "ProviderConfig",
    "ProvisionedInstance",
    "ResourceDescription",
    "SSHConfig",
]
