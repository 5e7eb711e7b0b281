from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple

from jsonschema import Draft7Validator

from ..constants import EFFECTS, PROTOCOLS, VISIBILITIES
from ..errors import ValidationError

_PORT = {"type": "integer", "minimum": 1, "maximum": 65535}

SCENARIO_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "topo_planner scenario layer",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "name": {"type": "string"},
        "networks": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    # Omitted cidr means: add subnets to a network declared by an earlier layer.
                    "cidr": {"type": "string"},
                    "subnets": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "additionalProperties": False,
                            "required": ["label"],
                            "properties": {
                                "label": {"type": "string", "minLength": 1},
                                "zone": {"type": "integer", "minimum": 0},
                                "visibility": {"enum": list(VISIBILITIES)},
                                "prefixlen": {"type": "integer", "minimum": 1, "maximum": 128},
                                "prefix_delta": {"type": "integer", "minimum": 1},
                                "cidr": {"type": "string"},
                                "count": {"type": "integer", "minimum": 1},
                            },
                        },
                    },
                },
            },
        },
        "services": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "ports": {"type": "array", "items": _PORT},
                    "visibility": {"enum": list(VISIBILITIES)},
                    "placement": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        "intents": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["source", "destination", "port"],
                "properties": {
                    "source": {"type": "string", "minLength": 1},
                    "destination": {"type": "string", "minLength": 1},
                    "port": _PORT,
                    "protocol": {"enum": list(PROTOCOLS)},
                    "effect": {"enum": list(EFFECTS)},
                },
            },
        },
    },
}

_SELECTOR = {
    "type": "object",
    "required": ["service", "subnets", "cidrs"],
    "properties": {
        "service": {"type": "string"},
        "subnets": {"type": "array", "items": {"type": "string"}},
        "cidrs": {"type": "array", "items": {"type": "string"}},
    },
}

PLAN_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "topo_planner serialized plan",
    "type": "object",
    "required": ["version", "networks", "subnets", "services", "rules", "routes", "warnings"],
    "properties": {
        "version": {"type": "integer"},
        "networks": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "cidr"],
                "properties": {"name": {"type": "string"}, "cidr": {"type": "string"}},
            },
        },
        "subnets": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["network", "label", "cidr", "zone", "visibility"],
                "properties": {
                    "network": {"type": "string"},
                    "label": {"type": "string"},
                    "cidr": {"type": ["string", "null"]},
                    "zone": {"type": "integer"},
                    "visibility": {"enum": list(VISIBILITIES)},
                },
            },
        },
        "services": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "ports", "visibility", "placement"],
                "properties": {
                    "name": {"type": "string"},
                    "ports": {"type": "array", "items": _PORT},
                    "visibility": {"enum": list(VISIBILITIES)},
                    "placement": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        "rules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["sourceSelector", "destSelector", "port", "protocol", "direction", "effect"],
                "properties": {
                    "sourceSelector": _SELECTOR,
                    "destSelector": _SELECTOR,
                    "port": _PORT,
                    "protocol": {"enum": list(PROTOCOLS)},
                    "direction": {"enum": ["egress", "ingress", "bidirectional"]},
                    "effect": {"enum": list(EFFECTS)},
                },
            },
        },
        "routes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["subnet", "destination", "target"],
                "properties": {
                    "subnet": {"type": "string"},
                    "destination": {"type": "string"},
                    "target": {"type": "string"},
                },
            },
        },
        "warnings": {"type": "array", "items": {"type": "string"}},
    },
}


_SCENARIO_VALIDATOR = Draft7Validator(SCENARIO_SCHEMA)
_PLAN_VALIDATOR = Draft7Validator(PLAN_SCHEMA)


def _locate(path: Iterable[Any]) -> str:
    """Render a jsonschema error path as `networks[0].subnets[1].cidr`."""
    loc = ""
    for part in path:
        if isinstance(part, int):
            loc += f"[{part}]"
        else:
            loc += f".{part}" if loc else str(part)
    return loc


def schema_errors(validator: Draft7Validator, instance: Any) -> List[str]:
    """All schema violations of `instance`, ordered by document location."""
    found = []
    for err in validator.iter_errors(instance):
        loc = _locate(err.absolute_path)
        found.append((loc, f"{loc}: {err.message}" if loc else err.message))
    return [msg for _, msg in sorted(found)]


def check_scenario_doc(doc: Any, source: str = "<scenario>") -> None:
    """Raise ValidationError listing every schema violation in one layer."""
    errors = schema_errors(_SCENARIO_VALIDATOR, doc)
    if errors:
        raise ValidationError(f"{source}: invalid scenario:\n" + "\n".join(f"  {e}" for e in errors))


def validate_serialized_plan(doc: Any) -> Tuple[bool, List[str]]:
    errors = schema_errors(_PLAN_VALIDATOR, doc)
    return not errors, errors
