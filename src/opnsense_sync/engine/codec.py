"""Field codec — native values to and from the appliance wire encoding.

The appliance stores everything as strings: booleans are ``"0"``/``"1"``,
integers are decimal strings and multi-value fields are newline-joined.
Comma-joined lists are parsed by the appliance as a single value, so the
codec refuses them instead of passing them through.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from opnsense_sync.client.errors import MalformedFieldError
from opnsense_sync.models.kind import FieldSpec, FieldType, ResourceKind

LIST_SEPARATOR = "\n"
REDACTED = "***"

_TRUE = "1"
_FALSE = "0"


def _encode_bool(spec: FieldSpec, value: Any) -> str:
    if not isinstance(value, bool):
        raise MalformedFieldError(spec.name, f"expected a boolean, got {value!r}")
    return _TRUE if value else _FALSE


def _decode_bool(spec: FieldSpec, wire: Any) -> bool:
    if wire == _TRUE:
        return True
    if wire == _FALSE:
        return False
    raise MalformedFieldError(spec.name, f"expected '0' or '1', got {wire!r}")


def _encode_int(spec: FieldSpec, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedFieldError(spec.name, f"expected an integer, got {value!r}")
    return str(value)


def _decode_int(spec: FieldSpec, wire: Any) -> int:
    if isinstance(wire, int) and not isinstance(wire, bool):
        return wire
    if isinstance(wire, str):
        try:
            return int(wire.strip())
        except ValueError:
            pass
    raise MalformedFieldError(spec.name, f"expected a decimal integer, got {wire!r}")


def _encode_list(spec: FieldSpec, value: Any) -> str:
    if isinstance(value, str):
        if "," in value:
            raise MalformedFieldError(
                spec.name,
                "comma-joined string given for a list field; pass a sequence,"
                " entries are newline-separated on the wire",
            )
        value = [value]
    if not isinstance(value, Sequence):
        raise MalformedFieldError(spec.name, f"expected a list of strings, got {value!r}")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise MalformedFieldError(spec.name, f"list entries must be strings, got {item!r}")
        if LIST_SEPARATOR in item:
            raise MalformedFieldError(spec.name, f"list entry {item!r} contains a newline")
        items.append(item)
    return LIST_SEPARATOR.join(items)


def _selected_keys(options: Mapping[str, Any]) -> list[str]:
    # Get endpoints render select fields as {key: {"value": label, "selected": 0|1}}
    return [
        key for key, option in options.items()
        if isinstance(option, Mapping) and str(option.get("selected", "0")) == "1"
    ]


def _is_option_dict(wire: Any) -> bool:
    return isinstance(wire, Mapping) and all(
        isinstance(option, Mapping) and "selected" in option
        for option in wire.values()
    )


def _decode_list(spec: FieldSpec, wire: Any) -> list[str]:
    if _is_option_dict(wire):
        return _selected_keys(wire)
    if isinstance(wire, list) and all(isinstance(item, str) for item in wire):
        return list(wire)
    if not isinstance(wire, str):
        raise MalformedFieldError(spec.name, f"expected newline-joined text, got {wire!r}")
    items = wire.split(LIST_SEPARATOR)
    while items and items[-1] == "":
        items.pop()
    return items


def _encode_option_map(spec: FieldSpec, value: Any) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedFieldError(spec.name, f"expected a mapping, got {value!r}")
    return {
        str(name).replace("-", "_"): {"value": str(data), "selected": 1}
        for name, data in value.items()
    }


def _decode_option_map(spec: FieldSpec, wire: Any) -> dict[str, str]:
    if not isinstance(wire, Mapping):
        raise MalformedFieldError(spec.name, f"expected an object, got {wire!r}")
    decoded: dict[str, str] = {}
    for name, option in wire.items():
        if isinstance(option, Mapping):
            if str(option.get("selected", "1")) != "1":
                continue
            decoded[name] = str(option.get("value", ""))
        else:
            decoded[name] = str(option)
    return decoded


def _encode_string(spec: FieldSpec, value: Any) -> str:
    if not isinstance(value, str):
        raise MalformedFieldError(spec.name, f"expected a string, got {value!r}")
    return value


def _decode_string(spec: FieldSpec, wire: Any) -> str:
    if isinstance(wire, str):
        return wire
    if _is_option_dict(wire):
        return ",".join(_selected_keys(wire))
    if isinstance(wire, (int, float)) and not isinstance(wire, bool):
        return str(wire)
    raise MalformedFieldError(spec.name, f"expected a string, got {wire!r}")


_ENCODERS = {
    FieldType.STRING: _encode_string,
    FieldType.BOOLEAN: _encode_bool,
    FieldType.INTEGER: _encode_int,
    FieldType.LIST: _encode_list,
    FieldType.OPTION_MAP: _encode_option_map,
}

_DECODERS = {
    FieldType.STRING: _decode_string,
    FieldType.BOOLEAN: _decode_bool,
    FieldType.INTEGER: _decode_int,
    FieldType.LIST: _decode_list,
    FieldType.OPTION_MAP: _decode_option_map,
}


def encode(spec: FieldSpec, value: Any) -> Any:
    """Encode one native value for the wire."""
    return _ENCODERS[spec.type](spec, value)


def decode(spec: FieldSpec, wire: Any) -> Any:
    """Decode one wire value into its native type."""
    return _DECODERS[spec.type](spec, wire)


def encode_payload(kind: ResourceKind, desired: Mapping[str, Any]) -> dict[str, Any]:
    """Build the enveloped request body for *desired*.

    Only fields present in *desired* with a non-``None`` value are emitted;
    an absent field is left untouched by the appliance while an empty one
    clears it.  Unknown field names raise ``MalformedFieldError``.
    """
    body: dict[str, Any] = {}
    for name in desired:
        if kind.field(name) is None:
            raise MalformedFieldError(name, f"not a field of '{kind.name}'")
    for spec in kind.fields:
        if spec.name not in desired:
            continue
        value = desired[spec.name]
        if value is None:
            continue
        body[spec.wire_key] = encode(spec, value)
    return {kind.envelope: body}


def decode_fields(kind: ResourceKind, record: Mapping[str, Any]) -> dict[str, Any]:
    """Decode an un-enveloped record into native values keyed by field name.

    Wire keys missing from *record* are left out of the result.
    """
    fields: dict[str, Any] = {}
    for spec in kind.fields:
        if spec.wire_key not in record:
            continue
        fields[spec.name] = decode(spec, record[spec.wire_key])
    return fields


def redact(kind: ResourceKind, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of an enveloped payload with sensitive values masked."""
    sensitive = {spec.wire_key for spec in kind.fields if spec.sensitive}
    masked: dict[str, Any] = {}
    for key, value in payload.items():
        if key == kind.envelope and isinstance(value, Mapping):
            masked[key] = {
                k: REDACTED if k in sensitive else v for k, v in value.items()
            }
        else:
            masked[key] = REDACTED if key in sensitive else value
    return masked
