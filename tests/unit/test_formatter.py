"""Tests for output formatting."""

from __future__ import annotations

import json
from io import StringIO
from unittest.mock import patch

import pytest
import yaml
from rich.console import Console

from opnsense_sync.models.state import ActivationWarning, ObservedState
from opnsense_sync.output.formatter import output, output_observed, print_warnings
from opnsense_sync.output.tables import format_cell, kv_table, make_table


@pytest.fixture
def buf():
    """Swap the output console for one that writes to a buffer."""
    out = StringIO()
    console = Console(file=out, force_terminal=False, width=200)
    with patch("opnsense_sync.output.formatter.console", console):
        yield out


@pytest.fixture
def observed() -> ObservedState:
    return ObservedState(
        kind="firewall_alias",
        identity="abc-123",
        fields={"name": "web", "content": ["10.0.0.1", "10.0.0.2"], "enabled": True},
    )


def render(table) -> str:
    out = StringIO()
    Console(file=out, force_terminal=False, width=120).print(table)
    return out.getvalue()


class TestFormatCell:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ""),
            (True, "true"),
            (False, "false"),
            (["a", "b"], "a\nb"),
            ({"routers": "10.0.0.1"}, "routers=10.0.0.1"),
            (8080, "8080"),
        ],
    )
    def test_values(self, value, expected):
        assert format_cell(value) == expected


class TestTables:
    def test_make_table(self):
        out = render(make_table("Test", ["A", "B"], [["1", "2"], ["3", "4"]]))
        assert "Test" in out
        assert "1" in out
        assert "4" in out

    def test_kv_table(self):
        out = render(kv_table({"key1": "val1", "enabled": False}, title="KV"))
        assert "key1" in out
        assert "val1" in out
        assert "false" in out


class TestOutput:
    def test_json(self, buf):
        output({"key": "val"}, "json")
        assert json.loads(buf.getvalue()) == {"key": "val"}

    def test_yaml(self, buf):
        output([{"a": 1}], "yaml")
        assert yaml.safe_load(buf.getvalue()) == [{"a": 1}]

    def test_table_columns_rows(self, buf):
        output(None, "table", columns=["Kind", "Fields"], rows=[["firewall_alias", "name"]])
        assert "firewall_alias" in buf.getvalue()

    def test_table_falls_back_to_text(self, buf):
        output("plain text", "table")
        assert "plain text" in buf.getvalue()


class TestOutputObserved:
    def test_table(self, buf, observed):
        output_observed(observed)
        out = buf.getvalue()
        assert "abc-123" in out
        assert "10.0.0.2" in out
        assert "true" in out

    def test_json(self, buf, observed):
        output_observed(observed, "json")
        data = json.loads(buf.getvalue())
        assert data["identity"] == "abc-123"
        assert data["fields"]["content"] == ["10.0.0.1", "10.0.0.2"]


def test_print_warnings():
    out = StringIO()
    with patch("opnsense_sync.output.formatter.err_console", Console(file=out, width=200)):
        print_warnings([ActivationWarning(subsystem="kea", message="Activation of 'kea' failed")])
    assert "Activation of 'kea' failed" in out.getvalue()


class TestSensitiveFields:
    @pytest.fixture
    def peer(self) -> ObservedState:
        return ObservedState(
            kind="wireguard_peer",
            identity="p1",
            fields={"name": "laptop", "preshared_key": "TOPSECRETPSK"},
        )

    def test_masked_in_json(self, buf, peer):
        output_observed(peer, "json")
        data = json.loads(buf.getvalue())
        assert data["fields"]["preshared_key"] == "***"
        assert data["fields"]["name"] == "laptop"

    def test_masked_in_table(self, buf, peer):
        output_observed(peer)
        assert "TOPSECRETPSK" not in buf.getvalue()

    def test_caller_state_untouched(self, buf, peer):
        output_observed(peer, "yaml")
        assert peer.fields["preshared_key"] == "TOPSECRETPSK"
