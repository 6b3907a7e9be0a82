"""Reconciliation engine."""

from stock_sync.sync.engine import ReconciliationEngine

__all__ = ["ReconciliationEngine"]
