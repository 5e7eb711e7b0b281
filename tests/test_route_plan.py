import ipaddress

from topo_planner.planning.route_plan import derive_routes, nat_gateway_hosts
from topo_planner.types import Network, Subnet

NET = Network("vpc", ipaddress.ip_network("10.0.0.0/16"))


def _sn(label, zone, vis):
    return Subnet(network="vpc", label=label, zone=zone, visibility=vis, prefixlen=24)


def test_public_to_igw_and_private_to_same_zone_nat():
    subnets = [
        _sn("public-subnet-1", 0, "public"),
        _sn("public-subnet-2", 1, "public"),
        _sn("private-subnet-1", 0, "private"),
        _sn("private-subnet-2", 1, "private"),
    ]
    routes = derive_routes([NET], subnets)
    defaults = {r.subnet: r.target for r in routes if r.destination == "0.0.0.0/0"}
    assert defaults == {
        "public-subnet-1": "internet-gateway",
        "public-subnet-2": "internet-gateway",
        "private-subnet-1": "nat-gateway:public-subnet-1",
        "private-subnet-2": "nat-gateway:public-subnet-2",
    }
    locals_ = [r for r in routes if r.target == "local"]
    assert len(locals_) == 4 and all(r.destination == "10.0.0.0/16" for r in locals_)
    assert nat_gateway_hosts(routes) == ["public-subnet-1", "public-subnet-2"]


def test_private_falls_back_to_lowest_zone_public():
    subnets = [_sn("pub-b", 2, "public"), _sn("pub-a", 1, "public"), _sn("priv", 5, "private")]
    routes = derive_routes([NET], subnets)
    assert [r.target for r in routes if r.subnet == "priv"] == ["local", "nat-gateway:pub-a"]


def test_no_public_subnet_means_local_only():
    routes = derive_routes([NET], [_sn("priv", 0, "private")])
    assert [(r.destination, r.target) for r in routes] == [("10.0.0.0/16", "local")]


def test_ipv6_default_route():
    net = Network("v6", ipaddress.ip_network("fd00::/56"))
    sn = Subnet(network="v6", label="pub", zone=0, visibility="public", prefixlen=64)
    routes = derive_routes([net], [sn])
    assert routes[-1].destination == "::/0"
