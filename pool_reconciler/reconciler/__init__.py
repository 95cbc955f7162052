"""Reconcilers for provider resource kinds."""

from pool_reconciler.reconciler.base import PhaseResult, Reconciler
from pool_reconciler.reconciler.droplet import DropletReconciler
from pool_reconciler.reconciler.registry import (
    get_reconciler_class,
    register_reconciler,
    registered_kinds,
)

__all__ = [
    "DropletReconciler",
    "PhaseResult",
    "Reconciler",
    "get_reconciler_class",
    "register_reconciler",
    "registered_kinds",
]
