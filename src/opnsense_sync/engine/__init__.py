"""Reconciliation engine: codec, response interpreter, reconciler, activation."""

from opnsense_sync.engine.activation import ActivationCoordinator
from opnsense_sync.engine.reconciler import DesiredState, Engine, Reconciler

__all__ = [
    "ActivationCoordinator",
    "DesiredState",
    "Engine",
    "Reconciler",
]
