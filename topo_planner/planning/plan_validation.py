from __future__ import annotations
import logging
from collections import defaultdict
from typing import Dict, List, Set, Tuple

from ..constants import DIRECTION_BIDIRECTIONAL, EFFECT_ALLOW, VISIBILITY_PRIVATE, VISIBILITY_PUBLIC
from ..types import AccessRule, Conflict, Plan, Selector, Subnet

logger = logging.getLogger(__name__)

CIDR_OVERLAP = "cidr-overlap"
DANGLING_REFERENCE = "dangling-reference"
CONTRADICTION = "contradiction"
UNROUTABLE = "unroutable"
UNEXPOSED_PORT = "unexposed-port"
PORT_COLLISION = "port-collision"
VISIBILITY_MISMATCH = "visibility-mismatch"
OUT_OF_NETWORK = "out-of-network"

CONFLICT_KINDS: Tuple[str, ...] = (
    OUT_OF_NETWORK,
    CIDR_OVERLAP,
    UNROUTABLE,
    DANGLING_REFERENCE,
    CONTRADICTION,
    UNEXPOSED_PORT,
    PORT_COLLISION,
    VISIBILITY_MISMATCH,
)


def _subnet_conflicts(plan: Plan) -> List[Conflict]:
    out: List[Conflict] = []
    by_network: Dict[str, List[Subnet]] = defaultdict(list)
    for sn in plan.subnets:
        network = plan.network(sn.network)
        if network is None:
            out.append(Conflict(OUT_OF_NETWORK, (sn.label, sn.network), f"subnet {sn.label} belongs to undeclared network {sn.network}"))
            continue
        if sn.cidr is None:
            out.append(Conflict(OUT_OF_NETWORK, (sn.label, sn.network), f"subnet {sn.label} has no CIDR assigned"))
            continue
        if sn.cidr.version != network.cidr.version or not sn.cidr.subnet_of(network.cidr):  # type: ignore[arg-type]
            out.append(Conflict(OUT_OF_NETWORK, (sn.label, sn.network), f"subnet {sn.label} {sn.cidr} is outside {sn.network} {network.cidr}"))
        by_network[sn.network].append(sn)

    for network_name, members in by_network.items():
        for i, a in enumerate(members):
            for b in members[i + 1:]:
                if a.cidr.version == b.cidr.version and a.cidr.overlaps(b.cidr):  # type: ignore[union-attr,arg-type]
                    out.append(Conflict(
                        CIDR_OVERLAP,
                        (a.label, b.label),
                        f"subnets {a.label} {a.cidr} and {b.label} {b.cidr} overlap in {network_name}",
                    ))
    return out


def _selector_conflicts(plan: Plan, rule: AccessRule, side: str, sel: Selector) -> List[Conflict]:
    out: List[Conflict] = []
    if plan.service(sel.service) is None:
        out.append(Conflict(DANGLING_REFERENCE, (sel.service,), f"rule {rule.describe()} {side} names undeclared service {sel.service}"))
    if not sel.subnets:
        out.append(Conflict(DANGLING_REFERENCE, (sel.service, "<empty>"), f"rule {rule.describe()} {side} selector for {sel.service} matches no subnet"))
    for label in sel.subnets:
        if plan.subnet(label) is None:
            out.append(Conflict(DANGLING_REFERENCE, (sel.service, label), f"rule {rule.describe()} {side} references undeclared subnet {label}"))
    return out


def _rule_conflicts(plan: Plan) -> List[Conflict]:
    out: List[Conflict] = []
    effects: Dict[Tuple[Selector, Selector, int, str], Set[str]] = defaultdict(set)
    for rule in plan.rules:
        out.extend(_selector_conflicts(plan, rule, "destination", rule.destination))
        out.extend(_selector_conflicts(plan, rule, "source", rule.source))

        flows = [(rule.source, rule.destination)]
        if rule.direction == DIRECTION_BIDIRECTIONAL:
            flows.append((rule.destination, rule.source))
        for src, dst in flows:
            effects[(src, dst, rule.port, rule.protocol)].add(rule.effect)
            if rule.effect != EFFECT_ALLOW:
                continue
            target = plan.service(dst.service)
            if target is not None and rule.port not in target.ports:
                out.append(Conflict(
                    UNEXPOSED_PORT,
                    (dst.service, src.service, f"{rule.port}/{rule.protocol}"),
                    f"{src.service} is allowed to reach {dst.service} on {rule.port}/{rule.protocol} but {dst.service} does not expose it",
                ))

    for (src, dst, port, proto), seen in sorted(effects.items(), key=lambda kv: (kv[0][0].service, kv[0][1].service, kv[0][2], kv[0][3])):
        if len(seen) > 1:
            out.append(Conflict(
                CONTRADICTION,
                (src.service, dst.service, f"{port}/{proto}"),
                f"{src.service}->{dst.service}:{port}/{proto} is both allowed and denied",
            ))
    return out


def _service_conflicts(plan: Plan) -> List[Conflict]:
    out: List[Conflict] = []
    services = list(plan.services)
    for svc in services:
        if not svc.placement:
            out.append(Conflict(UNROUTABLE, (svc.name,), f"service {svc.name} has no placement subnets"))
            continue
        known = [plan.subnet(lbl) for lbl in svc.placement]
        visibilities = {s.visibility for s in known if s is not None}
        if svc.visibility == VISIBILITY_PRIVATE and VISIBILITY_PUBLIC in visibilities:
            public = [s.label for s in known if s is not None and s.visibility == VISIBILITY_PUBLIC]
            out.append(Conflict(
                VISIBILITY_MISMATCH,
                (svc.name, *public),
                f"private service {svc.name} is placed in public subnet(s) {', '.join(public)}",
            ))
        elif svc.visibility == VISIBILITY_PUBLIC and VISIBILITY_PUBLIC not in visibilities:
            out.append(Conflict(VISIBILITY_MISMATCH, (svc.name,), f"public service {svc.name} has no public subnet in its placement"))

    for i, a in enumerate(services):
        for b in services[i + 1:]:
            shared = [lbl for lbl in a.placement if lbl in b.placement]
            if not shared:
                continue
            for port in sorted(set(a.ports) & set(b.ports)):
                out.append(Conflict(
                    PORT_COLLISION,
                    (a.name, b.name, str(port)),
                    f"services {a.name} and {b.name} both expose port {port} in {', '.join(shared)}",
                ))
    return out


def check_plan(plan: Plan) -> List[Conflict]:
    """Return every inconsistency found in a plan. Empty list means OK.

    The order is stable: subnet problems first, then placement problems,
    then rule problems, each in declaration or rule order. Identical
    conflicts reported through several rules appear once.
    """
    found = _subnet_conflicts(plan) + _service_conflicts(plan) + _rule_conflicts(plan)
    rank = {k: i for i, k in enumerate(CONFLICT_KINDS)}
    seen: Set[Tuple[str, Tuple[str, ...]]] = set()
    conflicts: List[Conflict] = []
    for c in sorted(found, key=lambda c: rank.get(c.kind, len(rank))):
        key = (c.kind, c.entities)
        if key in seen:
            continue
        seen.add(key)
        conflicts.append(c)
    logger.debug("Conflict check: %d conflict(s) in plan with %d subnets and %d rules", len(conflicts), len(plan.subnets), len(plan.rules))
    return conflicts
