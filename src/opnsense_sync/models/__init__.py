"""Pydantic data models for resource kinds, verdicts and observed state."""

from opnsense_sync.models.kind import (
    Endpoints,
    FieldSpec,
    FieldType,
    ResourceKind,
    Subsystem,
)
from opnsense_sync.models.state import (
    ActivationWarning,
    ConvergeAction,
    ConvergeResult,
    FieldDrift,
    MutationResult,
    ObservedState,
    ResourceState,
)
from opnsense_sync.models.verdict import Ambiguous, Failed, Identified, Verdict

__all__ = [
    "ActivationWarning",
    "Ambiguous",
    "ConvergeAction",
    "ConvergeResult",
    "Endpoints",
    "Failed",
    "FieldDrift",
    "FieldSpec",
    "FieldType",
    "Identified",
    "MutationResult",
    "ObservedState",
    "ResourceKind",
    "ResourceState",
    "Subsystem",
    "Verdict",
]
