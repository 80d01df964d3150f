"""Built-in resource kinds for OPNsense 26.1."""

from __future__ import annotations

from opnsense_sync.client.errors import ConfigurationError
from opnsense_sync.models.kind import (
    Endpoints,
    FieldSpec,
    FieldType,
    ResourceKind,
    Subsystem,
)

FIREWALL_ALIAS_SERVICE = Subsystem(name="firewall_alias", path="/firewall/alias/reconfigure")
FIREWALL_FILTER_SERVICE = Subsystem(name="firewall_filter", path="/firewall/filter/apply")
FIREWALL_SERVICE = Subsystem(name="firewall", path="/firewall/apply")
KEA_SERVICE = Subsystem(name="kea", path="/kea/service/reconfigure")
WIREGUARD_SERVICE = Subsystem(name="wireguard", path="/wireguard/service/reconfigure")

FIREWALL_ALIAS = ResourceKind(
    name="firewall_alias",
    module="firewall",
    controller="alias",
    envelope="alias",
    endpoints=Endpoints.camel(),
    subsystem=FIREWALL_ALIAS_SERVICE,
    description="Firewall aliases (host, network, port, url, geoip, ...)",
    fields=(
        FieldSpec(name="name", required=True),
        FieldSpec(name="type", required=True, description="host, network, port, url, ..."),
        FieldSpec(name="content", type=FieldType.LIST, required=True),
        FieldSpec(name="description"),
        FieldSpec(name="enabled", type=FieldType.BOOLEAN),
    ),
)

FIREWALL_CATEGORY = ResourceKind(
    name="firewall_category",
    module="firewall",
    controller="category",
    envelope="category",
    endpoints=Endpoints.camel(),
    description="Firewall categories used to group rules and aliases",
    fields=(
        FieldSpec(name="name", required=True),
        FieldSpec(name="color", description="Hex colour without '#'"),
        FieldSpec(name="auto", type=FieldType.BOOLEAN),
    ),
)

FIREWALL_RULE = ResourceKind(
    name="firewall_rule",
    module="firewall",
    controller="filter",
    envelope="rule",
    endpoints=Endpoints.snake("rule"),
    subsystem=FIREWALL_FILTER_SERVICE,
    description="Firewall filter rules",
    fields=(
        FieldSpec(name="enabled", type=FieldType.BOOLEAN),
        FieldSpec(name="sequence", type=FieldType.INTEGER),
        FieldSpec(name="action", description="pass, block or reject"),
        FieldSpec(name="interface"),
        FieldSpec(name="direction"),
        FieldSpec(name="protocol"),
        FieldSpec(name="source_net"),
        FieldSpec(name="source_port"),
        FieldSpec(name="destination_net"),
        FieldSpec(name="destination_port"),
        FieldSpec(name="log", type=FieldType.BOOLEAN),
        FieldSpec(name="description"),
    ),
)

NAT_DESTINATION = ResourceKind(
    name="nat_destination",
    module="firewall",
    controller="d_nat",
    envelope="rule",
    endpoints=Endpoints.snake("rule"),
    subsystem=FIREWALL_SERVICE,
    description="Destination NAT (port forward) rules",
    fields=(
        FieldSpec(name="enabled", type=FieldType.BOOLEAN),
        FieldSpec(name="interface", required=True),
        FieldSpec(name="protocol", required=True),
        FieldSpec(name="source_net", wire_key="source"),
        FieldSpec(name="source_port", wire_key="src_port"),
        FieldSpec(name="destination_net", wire_key="destination"),
        FieldSpec(name="destination_port", wire_key="dst_port", required=True),
        FieldSpec(name="target_ip", wire_key="target", required=True),
        FieldSpec(name="target_port", wire_key="local_port", required=True),
        FieldSpec(name="description"),
        FieldSpec(name="log", type=FieldType.BOOLEAN),
    ),
)

KEA_RESERVATION = ResourceKind(
    name="kea_reservation",
    module="kea",
    controller="dhcpv4",
    envelope="reservation",
    endpoints=Endpoints.snake("reservation"),
    subsystem=KEA_SERVICE,
    description="Kea DHCPv4 static reservations",
    fields=(
        FieldSpec(name="subnet", required=True, description="UUID of the Kea subnet"),
        FieldSpec(name="ip_address", required=True),
        FieldSpec(name="hw_address", required=True),
        FieldSpec(name="hostname"),
        FieldSpec(name="description"),
    ),
)

KEA_SUBNET = ResourceKind(
    name="kea_subnet",
    module="kea",
    controller="dhcpv4",
    envelope="subnet4",
    endpoints=Endpoints.snake("subnet"),
    subsystem=KEA_SERVICE,
    description="Kea DHCPv4 subnets",
    fields=(
        FieldSpec(name="subnet", required=True),
        FieldSpec(name="pools"),
        FieldSpec(name="option_data", type=FieldType.OPTION_MAP),
        FieldSpec(
            name="auto_collect", wire_key="option_data_autocollect",
            type=FieldType.BOOLEAN,
        ),
        FieldSpec(name="description"),
    ),
)

WIREGUARD_PEER = ResourceKind(
    name="wireguard_peer",
    module="wireguard",
    controller="client",
    envelope="client",
    endpoints=Endpoints.snake("client"),
    subsystem=WIREGUARD_SERVICE,
    description="WireGuard peers",
    fields=(
        FieldSpec(name="name", required=True),
        FieldSpec(name="enabled", type=FieldType.BOOLEAN),
        FieldSpec(name="public_key", wire_key="pubkey", required=True),
        FieldSpec(name="allowed_ips", wire_key="tunneladdress", required=True),
        FieldSpec(name="endpoint", wire_key="serveraddress"),
        FieldSpec(name="endpoint_port", wire_key="serverport", type=FieldType.INTEGER),
        FieldSpec(name="preshared_key", wire_key="psk", sensitive=True),
        FieldSpec(name="keepalive", type=FieldType.INTEGER),
    ),
)

KINDS: dict[str, ResourceKind] = {
    kind.name: kind
    for kind in (
        FIREWALL_ALIAS,
        FIREWALL_CATEGORY,
        FIREWALL_RULE,
        NAT_DESTINATION,
        KEA_RESERVATION,
        KEA_SUBNET,
        WIREGUARD_PEER,
    )
}


def get_kind(name: str) -> ResourceKind:
    try:
        return KINDS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown resource kind '{name}'. Available: {', '.join(sorted(KINDS))}"
        ) from None
