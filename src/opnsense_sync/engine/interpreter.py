"""Response interpreter — identity and verdict from heterogeneous bodies.

Endpoint families disagree on how they report a created object: some return
``{"uuid": ...}``, some nest it under the resource name, some put it in
``result``.  Each shape is one extraction strategy; they are tried in order
and anything none of them recognises is reported as ``Ambiguous``.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any, Optional

from opnsense_sync.models.verdict import Ambiguous, Failed, Identified, Verdict

IDENTITY_KEY = "uuid"
RESULT_KEY = "result"
FAILURE_SENTINEL = "failed"

# Values of ``result`` that report status rather than name an object
STATUS_WORDS = frozenset({FAILURE_SENTINEL, "saved", "deleted", "ok", "done", "not found"})

Strategy = Callable[[Mapping[str, Any], str], Optional[str]]


def _token(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def top_level_identity(doc: Mapping[str, Any], envelope: str) -> str | None:
    """``{"uuid": "..."}``"""
    return _token(doc.get(IDENTITY_KEY))


def nested_identity(doc: Mapping[str, Any], envelope: str) -> str | None:
    """``{"<envelope>": {"uuid": "..."}}``"""
    inner = doc.get(envelope)
    if isinstance(inner, Mapping):
        return _token(inner.get(IDENTITY_KEY))
    return None


def result_identity(doc: Mapping[str, Any], envelope: str) -> str | None:
    """``{"result": "<token>"}`` where the token is not a status word."""
    token = _token(doc.get(RESULT_KEY))
    if token is None or token.lower() in STATUS_WORDS:
        return None
    return token


STRATEGIES: tuple[Strategy, ...] = (
    top_level_identity,
    nested_identity,
    result_identity,
)


def decode_body(raw_body: str) -> Any:
    """Parse a JSON body, returning ``None`` when it is not JSON."""
    try:
        return json.loads(raw_body)
    except (json.JSONDecodeError, TypeError):
        return None


def _validation_detail(doc: Mapping[str, Any]) -> str | None:
    validations = doc.get("validations")
    if isinstance(validations, Mapping) and validations:
        return "; ".join(f"{key}: {msg}" for key, msg in validations.items())
    message = doc.get("message")
    if isinstance(message, str) and message:
        return message
    return None


def _is_rejection(doc: Any) -> bool:
    return (
        isinstance(doc, Mapping)
        and isinstance(doc.get(RESULT_KEY), str)
        and doc[RESULT_KEY].strip().lower() == FAILURE_SENTINEL
    )


def interpret(status: int, raw_body: str, envelope: str) -> Verdict:
    """Interpret the response to a create call."""
    if not 200 <= status < 300:
        return Failed(status=status, raw_body=raw_body, reason="status")
    doc = decode_body(raw_body)
    if doc is None:
        return Failed(status=status, raw_body=raw_body, reason="undecodable")
    if not isinstance(doc, Mapping):
        return Ambiguous(raw_body=raw_body)
    if _is_rejection(doc):
        return Failed(
            status=status, raw_body=raw_body, reason="rejected",
            detail=_validation_detail(doc),
        )
    for strategy in STRATEGIES:
        identity = strategy(doc, envelope)
        if identity is not None:
            return Identified(identity=identity)
    return Ambiguous(raw_body=raw_body)


def check_outcome(status: int, raw_body: str, *, lenient: bool = False) -> Failed | None:
    """Interpret the response to a set/delete/reconfigure call.

    These endpoints carry no identity; a 2xx JSON body without the failure
    sentinel is accepted.  A non-JSON 2xx body is ``undecodable`` unless
    *lenient*, which reconfigure calls need since several answer with plain
    text.
    """
    doc = decode_body(raw_body)
    if not 200 <= status < 300:
        detail = _validation_detail(doc) if isinstance(doc, Mapping) else None
        return Failed(status=status, raw_body=raw_body, reason="status", detail=detail)
    if doc is None and not lenient:
        return Failed(status=status, raw_body=raw_body, reason="undecodable")
    if _is_rejection(doc):
        return Failed(
            status=status, raw_body=raw_body, reason="rejected",
            detail=_validation_detail(doc),
        )
    return None
