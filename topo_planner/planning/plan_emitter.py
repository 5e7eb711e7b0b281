from __future__ import annotations
"""Serialize a Plan into the external document consumed by provisioning tools.

Emission never validates. A plan that was not marked validated carries a
PlanWarning marker in `warnings` so downstream tools can refuse it.
"""
import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

from ..constants import PLAN_SCHEMA_VERSION, PLAN_WARNING_UNVALIDATED
from ..types import Conflict, Plan, Selector

logger = logging.getLogger(__name__)


def _selector_doc(plan: Plan, sel: Selector) -> Dict[str, Any]:
    cidrs: List[str] = []
    for label in sel.subnets:
        sn = plan.subnet(label)
        if sn is not None and sn.cidr is not None:
            cidrs.append(str(sn.cidr))
    return {"service": sel.service, "subnets": list(sel.subnets), "cidrs": cidrs}


def emit_plan(plan: Plan, conflicts: Optional[Iterable[Conflict]] = None) -> Dict[str, Any]:
    """Return the SerializedPlan dict for `plan`.

    `conflicts`, when given, are copied into `warnings` as text so a forced
    emission still records what was wrong.
    """
    warnings: List[str] = []
    if not plan.validated:
        warnings.append(PLAN_WARNING_UNVALIDATED)
        logger.warning("Emitting a plan that has not passed the conflict check")
    for c in conflicts or []:
        warnings.append(str(c))

    return {
        "version": PLAN_SCHEMA_VERSION,
        "networks": [{"name": n.name, "cidr": str(n.cidr)} for n in plan.networks],
        "subnets": [
            {
                "network": s.network,
                "label": s.label,
                "cidr": str(s.cidr) if s.cidr is not None else None,
                "zone": s.zone,
                "visibility": s.visibility,
            }
            for s in plan.subnets
        ],
        "services": [
            {
                "name": svc.name,
                "ports": list(svc.ports),
                "visibility": svc.visibility,
                "placement": list(svc.placement),
            }
            for svc in plan.services
        ],
        "rules": [
            {
                "sourceSelector": _selector_doc(plan, r.source),
                "destSelector": _selector_doc(plan, r.destination),
                "port": r.port,
                "protocol": r.protocol,
                "direction": r.direction,
                "effect": r.effect,
            }
            for r in plan.rules
        ],
        "routes": [{"subnet": r.subnet, "destination": r.destination, "target": r.target} for r in plan.routes],
        "warnings": warnings,
    }


def write_plan_json(path: str, serialized: Dict[str, Any]) -> str:
    out_dir = os.path.dirname(os.path.abspath(path))
    os.makedirs(out_dir, exist_ok=True)
    tmp = path + ".tmp"
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(serialized, f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp, path)
    except (OSError, TypeError, ValueError):
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
    logger.info("Plan written to %s", path)
    return path
