"""Small, shared constants used across topo_planner.

Keep this module dependency-free to avoid import cycles.
"""

DEFAULT_SUBNET_PREFIXLEN: int = 24

VISIBILITY_PUBLIC: str = "public"
VISIBILITY_PRIVATE: str = "private"
VISIBILITIES = (VISIBILITY_PUBLIC, VISIBILITY_PRIVATE)

PROTOCOLS = ("tcp", "udp")
DEFAULT_PROTOCOL: str = "tcp"

EFFECT_ALLOW: str = "allow"
EFFECT_DENY: str = "deny"
EFFECTS = (EFFECT_ALLOW, EFFECT_DENY)

DIRECTION_EGRESS: str = "egress"
DIRECTION_INGRESS: str = "ingress"
DIRECTION_BIDIRECTIONAL: str = "bidirectional"

ROUTE_TARGET_LOCAL: str = "local"
ROUTE_TARGET_INTERNET_GATEWAY: str = "internet-gateway"
ROUTE_TARGET_NAT_PREFIX: str = "nat-gateway:"

# Bump whenever the serialized plan layout changes.
PLAN_SCHEMA_VERSION: int = 1

PLAN_WARNING_UNVALIDATED: str = "PlanWarning: plan was emitted without a clean conflict check"

DEFAULT_PLAN_OUTPUT: str = "plan.json"
PLAN_OUTPUT_ENV: str = "TOPO_PLANNER_OUTPUT"
