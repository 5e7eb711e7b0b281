"""Planning subpackage: pure stages that turn a TopologyModel into a Plan.

Each stage lives in its own small module so the orchestrator, the CLI and
unit tests share the same semantics.
"""

from .rule_plan import derive_access_rules  # noqa: F401
from .route_plan import derive_routes  # noqa: F401
from .plan_validation import check_plan  # noqa: F401
from .plan_emitter import emit_plan  # noqa: F401

__all__ = [
    "derive_access_rules",
    "derive_routes",
    "check_plan",
    "emit_plan",
]
