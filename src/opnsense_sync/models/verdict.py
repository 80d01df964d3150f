"""Verdicts produced by interpreting an appliance response."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict


class Identified(BaseModel):
    """The response carried a usable identity."""

    model_config = ConfigDict(frozen=True)

    identity: str


class Ambiguous(BaseModel):
    """The response parsed but no identity could be located."""

    model_config = ConfigDict(frozen=True)

    raw_body: str


class Failed(BaseModel):
    """The appliance did not accept the request.

    ``reason`` is ``status`` for a non-2xx response, ``undecodable`` when the
    body is not JSON, and ``rejected`` when the body carries the failure
    sentinel.
    """

    model_config = ConfigDict(frozen=True)

    status: int
    raw_body: str
    reason: Literal["status", "undecodable", "rejected"] = "status"
    detail: str | None = None


Verdict = Union[Identified, Ambiguous, Failed]
