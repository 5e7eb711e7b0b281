import json

import pytest

from topo_planner.constants import PLAN_WARNING_UNVALIDATED
from topo_planner.parsers.schemas import validate_serialized_plan
from topo_planner.planning.orchestrator import build_plan, compute_full_plan
from topo_planner.planning.plan_emitter import emit_plan, write_plan_json
from topo_planner.types import Conflict


def test_validated_plan_emits_without_warnings(auth_gateway_model):
    plan, conflicts = compute_full_plan(auth_gateway_model)
    assert conflicts == []
    doc = emit_plan(plan)
    ok, errors = validate_serialized_plan(doc)
    assert ok, errors
    assert doc["warnings"] == []
    assert doc["networks"] == [{"name": "core", "cidr": "10.0.0.0/16"}]
    assert doc["subnets"][0] == {
        "network": "core", "label": "app-a", "cidr": "10.0.0.0/24", "zone": 0, "visibility": "private",
    }
    assert doc["services"][0] == {"name": "auth", "ports": [9898], "visibility": "private", "placement": ["app-a"]}
    rule = doc["rules"][0]
    assert rule["sourceSelector"] == {"service": "gateway", "subnets": ["app-b"], "cidrs": ["10.0.1.0/24"]}
    assert rule["destSelector"]["cidrs"] == ["10.0.0.0/24"]
    assert (rule["port"], rule["protocol"], rule["direction"]) == (9898, "tcp", "egress")


def test_unchecked_plan_carries_plan_warning(auth_gateway_model):
    plan = build_plan(auth_gateway_model)
    doc = emit_plan(plan)
    assert doc["warnings"] == [PLAN_WARNING_UNVALIDATED]


def test_conflicts_are_copied_into_warnings(auth_gateway_model):
    plan = build_plan(auth_gateway_model)
    doc = emit_plan(plan, [Conflict("unroutable", ("x",), "service x has no placement subnets")])
    assert doc["warnings"][1] == "[unroutable] service x has no placement subnets"


def test_emission_is_stable_and_json_serializable(auth_gateway_model, tmp_path):
    plan, _ = compute_full_plan(auth_gateway_model)
    out = tmp_path / "nested" / "plan.json"
    write_plan_json(str(out), emit_plan(plan))
    first = out.read_text(encoding="utf-8")
    write_plan_json(str(out), emit_plan(plan))
    assert out.read_text(encoding="utf-8") == first
    assert json.loads(first)["version"] == 1


def test_failed_write_leaves_no_temp_file(tmp_path):
    out = tmp_path / "plan.json"
    with pytest.raises(TypeError):
        write_plan_json(str(out), {"bad": object()})
    assert not out.exists()
    assert list(tmp_path.iterdir()) == []
