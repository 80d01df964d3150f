"""Observed state and operation results."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ResourceState(str, Enum):
    """Lifecycle of one managed resource."""

    UNBOUND = "unbound"
    BOUND = "bound"
    DRIFTED = "drifted"


class ObservedState(BaseModel):
    """What the appliance holds for one identity."""

    kind: str
    identity: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)

    @property
    def bound(self) -> bool:
        return bool(self.identity)


class FieldDrift(BaseModel):
    """A managed field whose observed value differs from the desired one."""

    field: str
    desired: Any = None
    observed: Any = None


class ActivationWarning(BaseModel):
    """A reconfigure call failed after the mutation itself succeeded."""

    subsystem: str
    message: str


class MutationResult(BaseModel):
    """Outcome of Create/Update/Delete.

    ``observed`` is ``None`` after a delete.  ``already_absent`` marks a
    delete that found nothing to remove.
    """

    observed: ObservedState | None = None
    state: ResourceState = ResourceState.BOUND
    warnings: list[ActivationWarning] = Field(default_factory=list)
    already_absent: bool = False


class ConvergeAction(str, Enum):
    NOOP = "noop"
    CREATED = "created"
    RECREATED = "recreated"
    UPDATED = "updated"


class ConvergeResult(BaseModel):
    """Outcome of a full convergence pass for one resource."""

    action: ConvergeAction
    observed: ObservedState
    drift: list[FieldDrift] = Field(default_factory=list)
    warnings: list[ActivationWarning] = Field(default_factory=list)
