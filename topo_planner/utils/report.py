from __future__ import annotations
import os
import time
from collections import Counter
from typing import Dict, List, Optional, Sequence

from ..planning.route_plan import nat_gateway_hosts
from ..types import Conflict, Plan


def render_report(
    plan: Plan,
    conflicts: Optional[Sequence[Conflict]] = None,
    scenario_name: Optional[str] = None,
    metadata: Optional[Dict[str, object]] = None,
) -> str:
    conflicts = list(conflicts or [])
    ts = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())

    lines: List[str] = []
    lines.append("# Topology Plan Report")
    lines.append("")
    if scenario_name:
        lines.append(f"Scenario: {scenario_name}")
    lines.append(f"Generated: {ts}")
    lines.append("")
    if metadata and metadata.get("inputs"):
        lines.append("### Inputs")
        for p in metadata.get("inputs") or []:  # type: ignore[union-attr]
            lines.append(f"- {p}")
        lines.append("")

    lines.append("## Summary")
    lines.append(f"- Networks: {len(plan.networks)}  |  Subnets: {len(plan.subnets)}  |  Services: {len(plan.services)}")
    lines.append(f"- Access rules: {len(plan.rules)}  |  Routes: {len(plan.routes)}")
    nat_hosts = nat_gateway_hosts(plan.routes)
    if nat_hosts:
        lines.append(f"- NAT gateways: {len(nat_hosts)} ({', '.join(nat_hosts)})")
    lines.append(f"- Validated: {'yes' if plan.validated else 'no'}")
    lines.append("")

    lines.append("## Subnets")
    lines.append("| Network | Label | CIDR | Zone | Visibility |")
    lines.append("|---|---|---|---|---|")
    for s in plan.subnets:
        lines.append(f"| {s.network} | {s.label} | {s.cidr or '-'} | {s.zone} | {s.visibility} |")
    lines.append("")

    lines.append("## Services")
    for svc in plan.services:
        ports = ", ".join(str(p) for p in svc.ports) or "none"
        placement = ", ".join(svc.placement) or "none"
        lines.append(f"- {svc.name} ({svc.visibility}): ports {ports}; placement {placement}")
    lines.append("")

    lines.append("## Access Rules")
    if plan.rules:
        by_direction = Counter(r.direction for r in plan.rules)
        lines.append("- " + ", ".join(f"{d}={n}" for d, n in sorted(by_direction.items())))
        for r in plan.rules:
            lines.append(f"  - {r.describe()}")
    else:
        lines.append("- none")
    lines.append("")

    lines.append("## Conflicts")
    if conflicts:
        for c in conflicts:
            lines.append(f"- {c}")
    else:
        lines.append("- none")
    lines.append("")
    return "\n".join(lines)


def write_report(
    out_path: str,
    plan: Plan,
    conflicts: Optional[Sequence[Conflict]] = None,
    scenario_name: Optional[str] = None,
    metadata: Optional[Dict[str, object]] = None,
) -> str:
    os.makedirs(os.path.dirname(os.path.abspath(out_path)), exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(render_report(plan, conflicts, scenario_name=scenario_name, metadata=metadata))
    return out_path
