"""Network-topology and service-connectivity planner.

Declare networks, subnets, services and connectivity intents on a
TopologyModel, then run compute_full_plan to allocate subnet CIDRs, derive
access rules and routes, and collect conflicts before anything is provisioned.
"""

from .builders.topology import TopologyModel  # noqa: F401
from .errors import CapacityError, TopoPlannerError, ValidationError  # noqa: F401
from .planning.orchestrator import build_plan, compute_full_plan  # noqa: F401
from .planning.plan_emitter import emit_plan  # noqa: F401
from .planning.plan_validation import check_plan  # noqa: F401
from .types import AccessRule, Conflict, ConnectivityIntent, Network, Plan, Service, Subnet  # noqa: F401

__all__ = [
    "TopologyModel",
    "TopoPlannerError",
    "ValidationError",
    "CapacityError",
    "build_plan",
    "compute_full_plan",
    "emit_plan",
    "check_plan",
    "AccessRule",
    "Conflict",
    "ConnectivityIntent",
    "Network",
    "Plan",
    "Service",
    "Subnet",
]
