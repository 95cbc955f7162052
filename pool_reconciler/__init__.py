"""Declarative reconciliation of cloud compute pools against a cluster snapshot."""

__version__ = "0.1.0"
