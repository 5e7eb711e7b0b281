from __future__ import annotations
"""Unified planning orchestrator.

Runs every stage (allocation, rule derivation, routing, conflict check) in one
place so the CLI and library callers share identical semantics.
"""
from pathlib import Path
from typing import Dict, List, Sequence, Tuple
import logging

from .plan_validation import check_plan
from .route_plan import derive_routes
from .rule_plan import derive_access_rules
from ..builders.topology import TopologyModel
from ..parsers.scenario import load_scenario_files
from ..types import Conflict, IPNetwork, Plan, Subnet
from ..utils.allocators import SubnetRequest, allocate

logger = logging.getLogger(__name__)


def allocate_subnets(model: TopologyModel) -> Tuple[Subnet, ...]:
    """Resolve a CIDR for every subnet, network by network.

    Pinned subnets keep their CIDR and are carved out before the rest are
    allocated in declaration order.
    """
    resolved: Dict[str, IPNetwork] = {}
    for network in model.networks:
        members = model.subnets_of(network.name)
        pinned = [s.cidr for s in members if s.pinned and s.cidr is not None]
        requests = [SubnetRequest(label=s.label, prefixlen=s.prefixlen) for s in members if not s.pinned]
        resolved.update(allocate(network, requests, reserved=pinned))
    return tuple(s if s.pinned else s.with_cidr(resolved[s.label]) for s in model.subnets)


def build_plan(model: TopologyModel) -> Plan:
    subnets = allocate_subnets(model)
    rules = derive_access_rules(model.services, model.intents)
    routes = derive_routes(model.networks, subnets)
    plan = Plan(
        networks=model.networks,
        subnets=subnets,
        services=model.services,
        rules=rules,
        routes=routes,
    )
    logger.info(
        "Planned %d network(s), %d subnet(s), %d service(s), %d rule(s), %d route(s)",
        len(plan.networks), len(plan.subnets), len(plan.services), len(plan.rules), len(plan.routes),
    )
    return plan


def compute_full_plan(model: TopologyModel) -> Tuple[Plan, List[Conflict]]:
    """Build and check a plan.

    Returns (plan, conflicts). The plan is marked validated only when the
    conflict list is empty. ValidationError and CapacityError propagate.
    """
    plan = build_plan(model)
    conflicts = check_plan(plan)
    for c in conflicts:
        logger.warning("Plan conflict: %s", c)
    if not conflicts:
        plan = plan.mark_validated()
    return plan, conflicts


def plan_from_files(paths: Sequence[str | Path]) -> Tuple[Plan, List[Conflict]]:
    return compute_full_plan(load_scenario_files(paths))
