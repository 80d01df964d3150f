"""Activation coordinator — make stored changes take runtime effect."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from opnsense_sync.client.appliance import ApplianceClient
from opnsense_sync.client.errors import ActivationFailedError, OpnsenseSyncError
from opnsense_sync.engine.interpreter import check_outcome
from opnsense_sync.models.kind import Subsystem
from opnsense_sync.models.state import ActivationWarning

logger = logging.getLogger(__name__)


class ActivationCoordinator:
    """Calls a subsystem's reconfigure endpoint after mutations.

    Outside a ``batch()`` every ``activate`` call hits the appliance once.
    Inside a batch, requests are recorded and each subsystem is reconfigured
    once when the outermost batch exits.  Batches are per thread: a batch
    opened in one thread never defers another thread's activations.  A
    failed activation is returned as an ``ActivationWarning``; it never
    raises.
    """

    def __init__(self, client: ApplianceClient) -> None:
        self.client = client
        self._local = threading.local()

    @property
    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @_depth.setter
    def _depth(self, value: int) -> None:
        self._local.depth = value

    @property
    def _pending(self) -> dict[str, Subsystem]:
        pending = getattr(self._local, "pending", None)
        if pending is None:
            pending = self._local.pending = {}
        return pending

    def _call(self, subsystem: Subsystem) -> ActivationWarning | None:
        try:
            response = self.client.post(subsystem.path)
            failure = check_outcome(response.status, response.body, lenient=True)
            if failure is not None:
                raise ActivationFailedError(
                    subsystem.name,
                    failure.detail or f"status {failure.status}: {failure.raw_body}",
                )
        except OpnsenseSyncError as exc:
            logger.warning("%s", exc)
            return ActivationWarning(subsystem=subsystem.name, message=str(exc))
        logger.info("Activated %s", subsystem.name)
        return None

    def activate(self, subsystem: Subsystem) -> ActivationWarning | None:
        if self._depth > 0:
            self._pending.setdefault(subsystem.name, subsystem)
            logger.debug("Deferred activation of %s", subsystem.name)
            return None
        return self._call(subsystem)

    def flush(self) -> list[ActivationWarning]:
        """Run every activation this thread deferred."""
        pending = list(self._pending.values())
        self._pending.clear()
        warnings: list[ActivationWarning] = []
        for subsystem in pending:
            warning = self._call(subsystem)
            if warning is not None:
                warnings.append(warning)
        return warnings

    @contextmanager
    def batch(self) -> Iterator[list[ActivationWarning]]:
        """Coalesce this thread's activations until the block exits.

        Yields a list that is filled with the warnings of the deferred
        activations once they run.
        """
        warnings: list[ActivationWarning] = []
        self._depth += 1
        try:
            yield warnings
        finally:
            self._depth -= 1
            if self._depth == 0:
                warnings.extend(self.flush())
