import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so 'topo_planner' imports work without installing
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from topo_planner.builders.topology import TopologyModel  # noqa: E402

SCENARIO_DIR = ROOT / "scenarios" / "expense_tracker"


@pytest.fixture
def expense_layers():
    return sorted(SCENARIO_DIR.glob("*.yaml"))


@pytest.fixture
def auth_gateway_model():
    """Two /24s in a /16 and gateway->auth:9898/tcp."""
    m = TopologyModel()
    m.add_network("core", "10.0.0.0/16")
    m.add_subnet("core", "app-a", zone=0, visibility="private", prefixlen=24)
    m.add_subnet("core", "app-b", zone=1, visibility="private", prefixlen=24)
    m.add_service("auth", [9898], "private", ["app-a"])
    m.add_service("gateway", [80], "private", ["app-b"])
    m.add_intent("gateway", "auth", 9898, "tcp")
    return m
