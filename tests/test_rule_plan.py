import pytest

from topo_planner.errors import ValidationError
from topo_planner.planning.rule_plan import derive_access_rules
from topo_planner.types import ConnectivityIntent, Service


def _services():
    return [
        Service("auth", (9898,), "private", ("priv-1", "priv-2")),
        Service("gateway", (80, 9898), "public", ("pub-1",)),
        Service("mysql", (3306,), "private", ("priv-1",)),
    ]


def test_single_intent_yields_egress_and_ingress():
    rules = derive_access_rules(_services(), [ConnectivityIntent("gateway", "auth", 9898)])
    assert [r.direction for r in rules] == ["egress", "ingress"]
    egress, ingress = rules
    assert egress.source.service == "gateway" and egress.destination.service == "auth"
    assert egress.source.subnets == ("pub-1",)
    assert egress.destination.subnets == ("priv-1", "priv-2")
    assert egress.boundary.service == "gateway"
    assert ingress.boundary.service == "auth"
    assert all(r.port == 9898 and r.protocol == "tcp" and r.effect == "allow" for r in rules)


def test_duplicate_intents_collapse():
    intents = [ConnectivityIntent("gateway", "auth", 9898)] * 3
    assert len(derive_access_rules(_services(), intents)) == 2


def test_opposite_intents_collapse_to_one_bidirectional_pair():
    intents = [
        ConnectivityIntent("gateway", "auth", 9898),
        ConnectivityIntent("auth", "gateway", 9898),
        ConnectivityIntent("auth", "gateway", 9898),
    ]
    rules = derive_access_rules(_services(), intents)
    assert len(rules) == 2
    assert {r.direction for r in rules} == {"bidirectional"}
    assert [(r.source.service, r.destination.service) for r in rules] == [("auth", "gateway"), ("gateway", "auth")]


def test_opposite_intents_on_different_protocols_do_not_collapse():
    intents = [
        ConnectivityIntent("gateway", "auth", 9898, "tcp"),
        ConnectivityIntent("auth", "gateway", 9898, "udp"),
    ]
    rules = derive_access_rules(_services(), intents)
    assert len(rules) == 4
    assert "bidirectional" not in {r.direction for r in rules}


def test_rules_are_sorted_by_source_destination_port():
    intents = [
        ConnectivityIntent("gateway", "auth", 9898),
        ConnectivityIntent("auth", "mysql", 3306),
        ConnectivityIntent("gateway", "auth", 80),
    ]
    rules = derive_access_rules(_services(), intents)
    keys = [(r.source.service, r.destination.service, r.port) for r in rules]
    assert keys == sorted(keys)
    assert keys[0] == ("auth", "mysql", 3306)
    assert derive_access_rules(_services(), list(reversed(intents))) == rules


def test_deny_intent_produces_deny_rules():
    rules = derive_access_rules(_services(), [ConnectivityIntent("gateway", "mysql", 3306, effect="deny")])
    assert {r.effect for r in rules} == {"deny"}


def test_unknown_service_rejected():
    with pytest.raises(ValidationError):
        derive_access_rules(_services(), [ConnectivityIntent("billing", "auth", 9898)])
