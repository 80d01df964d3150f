"""Tests for the resource reconciler."""

from __future__ import annotations

import json
import threading

import httpx
import pytest
import respx

from opnsense_sync.client.appliance import ApplianceClient
from opnsense_sync.client.errors import (
    AmbiguousResponseError,
    ApplianceRejectedError,
    ConfigurationError,
    MalformedFieldError,
    MalformedResponseError,
    NotFoundError,
    UnauthorizedError,
)
from opnsense_sync.engine.reconciler import Engine, Reconciler
from opnsense_sync.kinds import FIREWALL_ALIAS, FIREWALL_CATEGORY, KINDS, WIREGUARD_PEER
from opnsense_sync.models.state import ConvergeAction, ObservedState, ResourceState

BASE = "https://fw.example/api"
ALIAS = f"{BASE}/firewall/alias"
APPLY = f"{ALIAS}/reconfigure"


@pytest.fixture
def alias(client: ApplianceClient) -> Reconciler:
    return Reconciler(FIREWALL_ALIAS, client)


def _ok_apply():
    return respx.post(APPLY).mock(return_value=httpx.Response(200, json={"status": "ok"}))


class TestCreate:
    @respx.mock
    def test_create_binds_identity(self, alias: Reconciler, alias_desired):
        add = respx.post(f"{ALIAS}/addItem").mock(
            return_value=httpx.Response(200, json={"result": "saved", "uuid": "abc-123"})
        )
        apply = _ok_apply()
        result = alias.create(alias_desired)
        assert result.state == ResourceState.BOUND
        assert result.observed is not None
        assert result.observed.identity == "abc-123"
        assert result.observed.fields == alias_desired
        assert json.loads(add.calls.last.request.content) == {
            "alias": {
                "name": "web",
                "type": "host",
                "content": "10.0.0.1\n10.0.0.2",
                "enabled": "1",
            }
        }
        assert apply.call_count == 1

    @respx.mock
    def test_activation_after_mutation(self, alias: Reconciler, alias_desired):
        order: list[str] = []

        def add(request):
            order.append("add")
            return httpx.Response(200, json={"uuid": "abc-123"})

        def apply(request):
            order.append("apply")
            return httpx.Response(200, json={"status": "ok"})

        respx.post(f"{ALIAS}/addItem").mock(side_effect=add)
        respx.post(APPLY).mock(side_effect=apply)
        alias.create(alias_desired)
        assert order == ["add", "apply"]

    @respx.mock
    def test_nested_identity(self, alias: Reconciler, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(
            return_value=httpx.Response(200, json={"alias": {"uuid": "x"}})
        )
        _ok_apply()
        assert alias.create(alias_desired).observed.identity == "x"

    @respx.mock
    def test_ambiguous_leaves_unbound(self, alias: Reconciler, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(
            return_value=httpx.Response(200, json={"result": "saved"})
        )
        apply = _ok_apply()
        with pytest.raises(AmbiguousResponseError) as info:
            alias.create(alias_desired)
        assert '"saved"' in info.value.raw_body
        assert apply.call_count == 0

    @respx.mock
    def test_rejected(self, alias: Reconciler, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(
            return_value=httpx.Response(200, json={
                "result": "failed",
                "validations": {"alias.name": "An alias with this name already exists."},
            })
        )
        apply = _ok_apply()
        with pytest.raises(ApplianceRejectedError, match="already exists"):
            alias.create(alias_desired)
        assert apply.call_count == 0

    @respx.mock
    def test_undecodable_body(self, alias: Reconciler, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(return_value=httpx.Response(200, text="<html>"))
        with pytest.raises(MalformedResponseError, match="<html>"):
            alias.create(alias_desired)

    @respx.mock
    def test_unauthorized(self, alias: Reconciler, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(
            return_value=httpx.Response(401, text='{"message":"Authentication Failed"}')
        )
        with pytest.raises(UnauthorizedError) as info:
            alias.create(alias_desired)
        assert info.value.raw_body == '{"message":"Authentication Failed"}'

    @respx.mock
    def test_activation_failure_keeps_success(self, alias: Reconciler, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(
            return_value=httpx.Response(200, json={"uuid": "abc-123"})
        )
        respx.post(APPLY).mock(return_value=httpx.Response(500, text="apply failed"))
        result = alias.create(alias_desired)
        assert result.observed.identity == "abc-123"
        assert result.state == ResourceState.BOUND
        assert len(result.warnings) == 1
        assert result.warnings[0].subsystem == "firewall_alias"

    def test_missing_required_field(self, alias: Reconciler):
        with pytest.raises(ConfigurationError, match="content"):
            alias.create({"name": "web", "type": "host"})

    def test_unknown_field(self, alias: Reconciler, alias_desired):
        with pytest.raises(ConfigurationError, match="colour"):
            alias.create({**alias_desired, "colour": "red"})

    def test_comma_joined_content(self, alias: Reconciler, alias_desired):
        with pytest.raises(MalformedFieldError):
            alias.create({**alias_desired, "content": "10.0.0.1,10.0.0.2"})

    @respx.mock
    def test_kind_without_subsystem_skips_activation(self, client: ApplianceClient):
        respx.post(f"{BASE}/firewall/category/addItem").mock(
            return_value=httpx.Response(200, json={"uuid": "cat-1"})
        )
        result = Reconciler(FIREWALL_CATEGORY, client).create({"name": "web", "auto": False})
        assert result.observed.identity == "cat-1"
        assert result.warnings == []


class TestRead:
    @respx.mock
    def test_read(self, alias: Reconciler, alias_get_response):
        respx.get(f"{ALIAS}/getItem/abc-123").mock(
            return_value=httpx.Response(200, json=alias_get_response)
        )
        observed = alias.read("abc-123")
        assert observed == ObservedState(
            kind="firewall_alias",
            identity="abc-123",
            fields={
                "name": "web",
                "type": "host",
                "content": ["10.0.0.1", "10.0.0.2"],
                "description": "",
                "enabled": True,
            },
        )

    @respx.mock
    @pytest.mark.parametrize("kind", list(KINDS.values()), ids=list(KINDS))
    def test_404_is_absence_for_every_kind(self, client: ApplianceClient, kind):
        respx.get(f"{BASE}{kind.path(kind.endpoints.get, 'gone')}").mock(
            return_value=httpx.Response(404, text="not found")
        )
        assert Reconciler(kind, client).read("gone") is None

    @respx.mock
    @pytest.mark.parametrize("payload", [[], {}])
    def test_empty_body_is_absence(self, alias: Reconciler, payload):
        respx.get(f"{ALIAS}/getItem/gone").mock(return_value=httpx.Response(200, json=payload))
        assert alias.read("gone") is None

    @respx.mock
    def test_server_error(self, alias: Reconciler):
        respx.get(f"{ALIAS}/getItem/abc").mock(return_value=httpx.Response(500, text="boom"))
        with pytest.raises(ApplianceRejectedError) as info:
            alias.read("abc")
        assert info.value.status_code == 500
        assert info.value.raw_body == "boom"

    @respx.mock
    def test_missing_envelope(self, alias: Reconciler):
        respx.get(f"{ALIAS}/getItem/abc").mock(
            return_value=httpx.Response(200, json={"rule": {"enabled": "1"}})
        )
        with pytest.raises(MalformedResponseError, match="'alias'"):
            alias.read("abc")

    @respx.mock
    def test_malformed_field(self, alias: Reconciler):
        respx.get(f"{ALIAS}/getItem/abc").mock(
            return_value=httpx.Response(200, json={"alias": {"enabled": "yes"}})
        )
        with pytest.raises(MalformedFieldError, match="enabled"):
            alias.read("abc")

    def test_empty_identity(self, alias: Reconciler):
        with pytest.raises(ConfigurationError):
            alias.read("")


class TestUpdate:
    @respx.mock
    def test_partial_patch(self, alias: Reconciler):
        route = respx.post(f"{ALIAS}/setItem/abc-123").mock(
            return_value=httpx.Response(200, json={"result": "saved"})
        )
        apply = _ok_apply()
        result = alias.update("abc-123", {"description": "web servers"})
        assert json.loads(route.calls.last.request.content) == {
            "alias": {"description": "web servers"}
        }
        assert result.observed.fields == {"description": "web servers"}
        assert apply.call_count == 1

    @respx.mock
    def test_rejected(self, alias: Reconciler):
        respx.post(f"{ALIAS}/setItem/abc").mock(
            return_value=httpx.Response(200, json={"result": "failed"})
        )
        apply = _ok_apply()
        with pytest.raises(ApplianceRejectedError):
            alias.update("abc", {"enabled": False})
        assert apply.call_count == 0

    @respx.mock
    def test_not_found(self, alias: Reconciler):
        respx.post(f"{ALIAS}/setItem/gone").mock(return_value=httpx.Response(404, text="no such item"))
        with pytest.raises(NotFoundError) as info:
            alias.update("gone", {"enabled": False})
        assert info.value.raw_body == "no such item"

    @respx.mock
    def test_html_page_is_not_success(self, alias: Reconciler):
        respx.post(f"{ALIAS}/setItem/abc").mock(
            return_value=httpx.Response(200, text="<html>login</html>")
        )
        apply = _ok_apply()
        with pytest.raises(MalformedResponseError) as info:
            alias.update("abc", {"enabled": False})
        assert info.value.raw_body == "<html>login</html>"
        assert apply.call_count == 0

    @respx.mock
    def test_sensitive_field_sent_but_not_logged(self, client: ApplianceClient, caplog):
        route = respx.post(f"{BASE}/wireguard/client/set_client/p1").mock(
            return_value=httpx.Response(200, json={"result": "saved"})
        )
        respx.post(f"{BASE}/wireguard/service/reconfigure").mock(
            return_value=httpx.Response(200, json={"status": "ok"})
        )
        with caplog.at_level("DEBUG", logger="opnsense_sync"):
            Reconciler(WIREGUARD_PEER, client).update("p1", {"preshared_key": "s3cret"})
        assert json.loads(route.calls.last.request.content) == {"client": {"psk": "s3cret"}}
        assert "s3cret" not in caplog.text


class TestDelete:
    @respx.mock
    def test_delete(self, alias: Reconciler):
        respx.post(f"{ALIAS}/delItem/abc").mock(
            return_value=httpx.Response(200, json={"result": "deleted"})
        )
        apply = _ok_apply()
        result = alias.delete("abc")
        assert result.state == ResourceState.UNBOUND
        assert result.observed is None
        assert not result.already_absent
        assert apply.call_count == 1

    @respx.mock
    def test_delete_twice(self, alias: Reconciler):
        respx.post(f"{ALIAS}/delItem/abc").mock(side_effect=[
            httpx.Response(200, json={"result": "deleted"}),
            httpx.Response(404, text="not found"),
        ])
        apply = _ok_apply()
        first = alias.delete("abc")
        second = alias.delete("abc")
        assert not first.already_absent
        assert second.already_absent
        assert second.state == ResourceState.UNBOUND
        assert apply.call_count == 1

    @respx.mock
    def test_not_found_result_is_already_gone(self, alias: Reconciler):
        respx.post(f"{ALIAS}/delItem/abc").mock(
            return_value=httpx.Response(200, json={"result": "not found"})
        )
        apply = _ok_apply()
        assert alias.delete("abc").already_absent
        assert apply.call_count == 0

    @respx.mock
    def test_rejected(self, alias: Reconciler):
        respx.post(f"{ALIAS}/delItem/abc").mock(
            return_value=httpx.Response(200, json={"result": "failed", "message": "alias in use"})
        )
        with pytest.raises(ApplianceRejectedError, match="alias in use"):
            alias.delete("abc")

    @respx.mock
    def test_html_page_is_not_success(self, alias: Reconciler):
        respx.post(f"{ALIAS}/delItem/abc").mock(
            return_value=httpx.Response(200, text="<html>login</html>")
        )
        apply = _ok_apply()
        with pytest.raises(MalformedResponseError):
            alias.delete("abc")
        assert apply.call_count == 0


class TestImport:
    def test_seeds_identity_only(self, alias: Reconciler):
        observed = alias.import_state("abc-123")
        assert observed.identity == "abc-123"
        assert observed.fields == {}
        assert observed.bound


class TestDiff:
    def test_no_drift(self, alias: Reconciler, alias_desired):
        observed = ObservedState(kind="firewall_alias", identity="a", fields=dict(alias_desired))
        assert alias.diff(alias_desired, observed) == []

    def test_content_order_matters(self, alias: Reconciler, alias_desired):
        observed = ObservedState(
            kind="firewall_alias", identity="a",
            fields={**alias_desired, "content": ["10.0.0.2", "10.0.0.1"]},
        )
        assert [d.field for d in alias.diff(alias_desired, observed)] == ["content"]

    def test_unmanaged_fields_ignored(self, alias: Reconciler):
        observed = ObservedState(
            kind="firewall_alias", identity="a",
            fields={"name": "web", "description": "set by hand"},
        )
        assert alias.diff({"name": "web"}, observed) == []

    def test_unechoed_secret_is_not_drift(self, client: ApplianceClient):
        peer = Reconciler(WIREGUARD_PEER, client)
        observed = ObservedState(kind="wireguard_peer", identity="p", fields={"name": "laptop"})
        assert peer.diff({"name": "laptop", "preshared_key": "s3cret"}, observed) == []


class TestConverge:
    @respx.mock
    def test_unbound_creates(self, alias: Reconciler, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(return_value=httpx.Response(200, json={"uuid": "new"}))
        _ok_apply()
        result = alias.converge(alias_desired)
        assert result.action == ConvergeAction.CREATED
        assert result.observed.identity == "new"

    @respx.mock
    def test_in_sync_is_noop(self, alias: Reconciler, alias_desired, alias_get_response):
        respx.get(f"{ALIAS}/getItem/abc").mock(
            return_value=httpx.Response(200, json=alias_get_response)
        )
        set_item = respx.post(f"{ALIAS}/setItem/abc")
        apply = _ok_apply()
        known = alias.import_state("abc")
        result = alias.converge(alias_desired, known)
        assert result.action == ConvergeAction.NOOP
        assert not set_item.called
        assert apply.call_count == 0

    @respx.mock
    def test_drift_updates_only_drifted_fields(self, alias: Reconciler, alias_desired, alias_get_response):
        alias_get_response["alias"]["enabled"] = "0"
        respx.get(f"{ALIAS}/getItem/abc").mock(
            return_value=httpx.Response(200, json=alias_get_response)
        )
        set_item = respx.post(f"{ALIAS}/setItem/abc").mock(
            return_value=httpx.Response(200, json={"result": "saved"})
        )
        _ok_apply()
        result = alias.converge(alias_desired, alias.import_state("abc"))
        assert result.action == ConvergeAction.UPDATED
        assert [d.field for d in result.drift] == ["enabled"]
        assert json.loads(set_item.calls.last.request.content) == {"alias": {"enabled": "1"}}
        assert result.observed.fields["enabled"] is True

    @respx.mock
    def test_vanished_is_recreated(self, alias: Reconciler, alias_desired):
        respx.get(f"{ALIAS}/getItem/old").mock(return_value=httpx.Response(404))
        respx.post(f"{ALIAS}/addItem").mock(return_value=httpx.Response(200, json={"uuid": "new"}))
        _ok_apply()
        result = alias.converge(alias_desired, alias.import_state("old"))
        assert result.action == ConvergeAction.RECREATED
        assert result.observed.identity == "new"

    @respx.mock
    def test_repeated_passes_converge(self, alias: Reconciler, alias_desired, alias_get_response):
        respx.post(f"{ALIAS}/addItem").mock(return_value=httpx.Response(200, json={"uuid": "abc"}))
        respx.get(f"{ALIAS}/getItem/abc").mock(
            return_value=httpx.Response(200, json=alias_get_response)
        )
        apply = _ok_apply()
        first = alias.converge(alias_desired)
        second = alias.converge(alias_desired, first.observed)
        third = alias.converge(alias_desired, second.observed)
        assert first.action == ConvergeAction.CREATED
        assert second.action == third.action == ConvergeAction.NOOP
        assert apply.call_count == 1


class TestEngine:
    @respx.mock
    def test_batch_coalesces_across_reconcilers(self, sample_profile, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(side_effect=[
            httpx.Response(200, json={"uuid": "a1"}),
            httpx.Response(200, json={"uuid": "a2"}),
        ])
        apply = _ok_apply()
        with Engine(sample_profile) as engine:
            with engine.batch():
                engine.reconciler("firewall_alias").create(alias_desired)
                engine.reconciler("firewall_alias").create({**alias_desired, "name": "db"})
        assert apply.call_count == 1

    @respx.mock
    def test_batch_in_one_thread_leaves_others_alone(self, sample_profile, alias_desired):
        respx.post(f"{ALIAS}/addItem").mock(return_value=httpx.Response(200, json={"uuid": "b1"}))
        apply = respx.post(APPLY).mock(return_value=httpx.Response(500, text="apply failed"))
        seen: dict = {}

        with Engine(sample_profile) as engine:
            def create_elsewhere():
                seen["result"] = engine.reconciler("firewall_alias").create(alias_desired)
                seen["calls"] = apply.call_count

            with engine.batch() as warnings:
                worker = threading.Thread(target=create_elsewhere)
                worker.start()
                worker.join()
        assert seen["calls"] == 1
        assert len(seen["result"].warnings) == 1
        assert warnings == []

    def test_unknown_kind(self, sample_profile):
        with Engine(sample_profile) as engine, pytest.raises(ConfigurationError, match="Unknown resource kind"):
            engine.reconciler("firewall_nope")
