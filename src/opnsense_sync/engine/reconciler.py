"""Resource reconciler — generic CRUD and convergence over a ResourceKind.

There is no version token on appliance resources: two callers updating the
same identity concurrently race, and the last write wins.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import Any, NoReturn

from opnsense_sync.client.appliance import ApplianceClient
from opnsense_sync.client.errors import (
    AmbiguousResponseError,
    ApplianceRejectedError,
    ConfigurationError,
    MalformedResponseError,
    NotFoundError,
    UnauthorizedError,
)
from opnsense_sync.config.models import ApplianceProfile
from opnsense_sync.engine.activation import ActivationCoordinator
from opnsense_sync.engine.codec import decode_fields, encode_payload, redact
from opnsense_sync.engine.interpreter import (
    RESULT_KEY,
    check_outcome,
    decode_body,
    interpret,
)
from opnsense_sync.kinds import get_kind
from opnsense_sync.models.kind import FieldSpec, FieldType, ResourceKind
from opnsense_sync.models.state import (
    ActivationWarning,
    ConvergeAction,
    ConvergeResult,
    FieldDrift,
    MutationResult,
    ObservedState,
    ResourceState,
)
from opnsense_sync.models.verdict import Ambiguous, Failed

logger = logging.getLogger(__name__)

DesiredState = Mapping[str, Any]

_ALREADY_GONE = "not found"


def _normalize(spec: FieldSpec, value: Any) -> Any:
    if spec.type == FieldType.LIST:
        if isinstance(value, str):
            return [value]
        return list(value) if value is not None else []
    if spec.type == FieldType.OPTION_MAP and isinstance(value, Mapping):
        return {str(k).replace("-", "_"): str(v) for k, v in value.items()}
    return value


class Reconciler:
    """Keeps one kind of appliance resource in line with desired state."""

    def __init__(
        self,
        kind: ResourceKind,
        client: ApplianceClient,
        activator: ActivationCoordinator | None = None,
    ) -> None:
        self.kind = kind
        self.client = client
        self.activator = activator or ActivationCoordinator(client)

    def _validate(self, desired: DesiredState, *, creating: bool) -> None:
        unknown = [name for name in desired if self.kind.field(name) is None]
        if unknown:
            raise ConfigurationError(
                f"Unknown field(s) for {self.kind.name}: {', '.join(sorted(unknown))}"
            )
        if creating:
            missing = [
                name for name in self.kind.required_fields
                if desired.get(name) is None
            ]
            if missing:
                raise ConfigurationError(
                    f"Missing required field(s) for {self.kind.name}: {', '.join(missing)}"
                )

    def _require_identity(self, identity: str) -> None:
        if not identity:
            raise ConfigurationError(f"No identity given for {self.kind.name}")

    def _raise_for(self, failure: Failed, action: str) -> NoReturn:
        if failure.reason == "undecodable":
            raise MalformedResponseError(
                f"Cannot decode response to {action} {self.kind.name}", failure.raw_body,
            )
        if failure.status in (401, 403):
            raise UnauthorizedError(
                "API key/secret rejected. Check the credentials and the user's"
                " privileges on the appliance.",
                failure.raw_body,
            )
        if failure.status == 404:
            raise NotFoundError(
                f"{self.kind.name}: {action} target not found", failure.raw_body,
            )
        raise ApplianceRejectedError(failure.status, failure.raw_body, failure.detail or "")

    def _activate(self) -> list[ActivationWarning]:
        if self.kind.subsystem is None:
            return []
        warning = self.activator.activate(self.kind.subsystem)
        return [warning] if warning is not None else []

    def _create(
        self, desired: DesiredState, cancel: threading.Event | None,
    ) -> tuple[ObservedState, list[ActivationWarning]]:
        self._validate(desired, creating=True)
        payload = encode_payload(self.kind, desired)
        logger.debug("Create %s: %s", self.kind.name, redact(self.kind, payload))
        response = self.client.post(
            self.kind.path(self.kind.endpoints.add), payload, cancel=cancel,
        )
        verdict = interpret(response.status, response.body, self.kind.envelope)
        if isinstance(verdict, Failed):
            self._raise_for(verdict, "create")
        if isinstance(verdict, Ambiguous):
            logger.warning(
                "Create %s returned no identity: %s", self.kind.name, verdict.raw_body,
            )
            raise AmbiguousResponseError(verdict.raw_body)
        observed = ObservedState(
            kind=self.kind.name,
            identity=verdict.identity,
            fields={k: v for k, v in desired.items() if v is not None},
        )
        logger.info("Created %s %s", self.kind.name, observed.identity)
        return observed, self._activate()

    def create(
        self, desired: DesiredState, *, cancel: threading.Event | None = None,
    ) -> MutationResult:
        observed, warnings = self._create(desired, cancel)
        return MutationResult(
            observed=observed, state=ResourceState.BOUND, warnings=warnings,
        )

    def read(
        self, identity: str, *, cancel: threading.Event | None = None,
    ) -> ObservedState | None:
        """Fetch the current fields of *identity*.

        Returns ``None`` when the appliance no longer has it: a 404, or an
        empty body, which is how get endpoints answer unknown identities.
        """
        self._require_identity(identity)
        response = self.client.get(
            self.kind.path(self.kind.endpoints.get, identity), cancel=cancel,
        )
        if response.status == 404:
            logger.info("%s %s no longer exists", self.kind.name, identity)
            return None
        if not response.is_success:
            self._raise_for(
                Failed(status=response.status, raw_body=response.body), "read",
            )
        doc = decode_body(response.body)
        if doc is None:
            raise MalformedResponseError(
                f"Cannot decode {self.kind.name} {identity}", response.body,
            )
        if not doc:
            logger.info("%s %s no longer exists", self.kind.name, identity)
            return None
        record = doc.get(self.kind.envelope) if isinstance(doc, Mapping) else None
        if not isinstance(record, Mapping):
            raise MalformedResponseError(
                f"Response for {self.kind.name} {identity} has no"
                f" '{self.kind.envelope}' object",
                response.body,
            )
        return ObservedState(
            kind=self.kind.name,
            identity=identity,
            fields=decode_fields(self.kind, record),
        )

    def update(
        self,
        identity: str,
        desired: DesiredState,
        *,
        cancel: threading.Event | None = None,
    ) -> MutationResult:
        """Patch *identity* with the fields present in *desired*."""
        self._require_identity(identity)
        self._validate(desired, creating=False)
        payload = encode_payload(self.kind, desired)
        logger.debug(
            "Update %s %s: %s", self.kind.name, identity, redact(self.kind, payload),
        )
        response = self.client.post(
            self.kind.path(self.kind.endpoints.set, identity), payload, cancel=cancel,
        )
        failure = check_outcome(response.status, response.body)
        if failure is not None:
            self._raise_for(failure, "update")
        observed = ObservedState(
            kind=self.kind.name,
            identity=identity,
            fields={k: v for k, v in desired.items() if v is not None},
        )
        logger.info("Updated %s %s", self.kind.name, identity)
        return MutationResult(
            observed=observed, state=ResourceState.BOUND, warnings=self._activate(),
        )

    def delete(
        self, identity: str, *, cancel: threading.Event | None = None,
    ) -> MutationResult:
        """Remove *identity*; an identity that is already gone is success."""
        self._require_identity(identity)
        response = self.client.post(
            self.kind.path(self.kind.endpoints.delete, identity), cancel=cancel,
        )
        doc = decode_body(response.body)
        gone = response.status == 404 or (
            response.is_success
            and isinstance(doc, Mapping)
            and str(doc.get(RESULT_KEY, "")).lower() == _ALREADY_GONE
        )
        if gone:
            logger.info("%s %s already absent", self.kind.name, identity)
            return MutationResult(state=ResourceState.UNBOUND, already_absent=True)
        failure = check_outcome(response.status, response.body)
        if failure is not None:
            self._raise_for(failure, "delete")
        logger.info("Deleted %s %s", self.kind.name, identity)
        return MutationResult(state=ResourceState.UNBOUND, warnings=self._activate())

    def import_state(self, identity: str) -> ObservedState:
        """Adopt an existing appliance object by identity, without a call."""
        self._require_identity(identity)
        return ObservedState(kind=self.kind.name, identity=identity)

    def diff(self, desired: DesiredState, observed: ObservedState) -> list[FieldDrift]:
        """Managed fields whose observed value differs from *desired*.

        Sensitive fields the appliance does not echo back are not drift.
        """
        drift: list[FieldDrift] = []
        for spec in self.kind.fields:
            if spec.name not in desired or desired[spec.name] is None:
                continue
            if spec.name not in observed.fields and spec.sensitive:
                continue
            want = _normalize(spec, desired[spec.name])
            have = observed.fields.get(spec.name)
            if have is not None:
                have = _normalize(spec, have)
            if want != have:
                drift.append(FieldDrift(field=spec.name, desired=want, observed=have))
        return drift

    def converge(
        self,
        desired: DesiredState,
        observed: ObservedState | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> ConvergeResult:
        """One convergence pass: create, re-create, update or leave alone."""
        self._validate(desired, creating=False)
        if observed is None or not observed.bound:
            created, warnings = self._create(desired, cancel)
            return ConvergeResult(
                action=ConvergeAction.CREATED, observed=created, warnings=warnings,
            )

        current = self.read(observed.identity, cancel=cancel)
        if current is None:
            logger.info(
                "%s %s is %s, re-creating",
                self.kind.name, observed.identity, ResourceState.DRIFTED.value,
            )
            created, warnings = self._create(desired, cancel)
            return ConvergeResult(
                action=ConvergeAction.RECREATED, observed=created, warnings=warnings,
            )

        drift = self.diff(desired, current)
        if not drift:
            return ConvergeResult(action=ConvergeAction.NOOP, observed=current)

        patch = {item.field: desired[item.field] for item in drift}
        result = self.update(current.identity, patch, cancel=cancel)
        fields = {**current.fields, **patch}
        return ConvergeResult(
            action=ConvergeAction.UPDATED,
            observed=ObservedState(
                kind=self.kind.name, identity=current.identity, fields=fields,
            ),
            drift=drift,
            warnings=result.warnings,
        )


class Engine:
    """One appliance session: a shared client and activation coordinator."""

    def __init__(self, profile: ApplianceProfile) -> None:
        self.client = ApplianceClient(profile)
        self.activator = ActivationCoordinator(self.client)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> Engine:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def reconciler(self, kind: str | ResourceKind) -> Reconciler:
        if isinstance(kind, str):
            kind = get_kind(kind)
        return Reconciler(kind, self.client, self.activator)

    def batch(self) -> AbstractContextManager[list[ActivationWarning]]:
        """Coalesce activations; see ``ActivationCoordinator.batch``."""
        return self.activator.batch()
