import ipaddress
import itertools

import pytest

from topo_planner.errors import CapacityError
from topo_planner.types import Network
from topo_planner.utils.allocators import (
    SubnetAllocator,
    SubnetRequest,
    allocate,
    requests_from_deltas,
    split_evenly,
)

NET = Network(name="vpc", cidr=ipaddress.ip_network("10.0.0.0/16"))


def _assert_disjoint_within(parent, nets):
    for a, b in itertools.combinations(nets, 2):
        assert not a.overlaps(b), (a, b)
    for n in nets:
        assert n.subnet_of(parent)


def test_consecutive_24s_in_request_order():
    out = allocate(NET, [SubnetRequest("a", 24), SubnetRequest("b", 24)])
    assert list(out) == ["a", "b"]
    assert [str(v) for v in out.values()] == ["10.0.0.0/24", "10.0.1.0/24"]


def test_halving_fills_alignment_gaps():
    reqs = [SubnetRequest("small-1", 25), SubnetRequest("big", 24), SubnetRequest("small-2", 25)]
    out = allocate(NET, reqs)
    assert str(out["small-1"]) == "10.0.0.0/25"
    assert str(out["small-2"]) == "10.0.0.128/25"
    assert str(out["big"]) == "10.0.1.0/24"


def test_mixed_sizes_are_disjoint_and_inside_parent():
    parent = ipaddress.ip_network("10.0.0.0/24")
    sizes = [26, 28, 26, 27, 28, 30, 30]
    out = allocate(parent, [SubnetRequest(f"s{i}", p) for i, p in enumerate(sizes)])
    _assert_disjoint_within(parent, list(out.values()))
    assert [v.prefixlen for v in out.values()] == sizes


def test_exact_fill_succeeds():
    parent = ipaddress.ip_network("10.0.0.0/24")
    out = allocate(parent, [SubnetRequest("a", 25), SubnetRequest("b", 26), SubnetRequest("c", 26)])
    _assert_disjoint_within(parent, list(out.values()))


def test_allocation_is_deterministic():
    reqs = [SubnetRequest("x", 27), SubnetRequest("y", 24), SubnetRequest("z", 26)]
    first = allocate(NET, reqs)
    second = allocate(NET, list(reqs))
    assert list(first.items()) == list(second.items())


def test_over_capacity_raises_with_sizes():
    parent = ipaddress.ip_network("10.0.0.0/24")
    with pytest.raises(CapacityError) as ei:
        allocate(parent, [SubnetRequest("a", 25), SubnetRequest("b", 25), SubnetRequest("c", 26)])
    assert ei.value.requested == 320
    assert ei.value.available == 256


def test_request_larger_than_parent_raises():
    parent = ipaddress.ip_network("10.0.0.0/24")
    with pytest.raises(CapacityError):
        allocate(parent, [SubnetRequest("a", 23)])


def test_reserved_blocks_are_skipped():
    parent = ipaddress.ip_network("10.0.0.0/24")
    pinned = ipaddress.ip_network("10.0.0.0/26")
    out = allocate(parent, [SubnetRequest("a", 26), SubnetRequest("b", 25)], reserved=[pinned])
    assert str(out["a"]) == "10.0.0.64/26"
    assert str(out["b"]) == "10.0.0.128/25"
    with pytest.raises(CapacityError):
        allocate(parent, [SubnetRequest("a", 25), SubnetRequest("b", 25)], reserved=[pinned])


def test_fragmented_pool_reports_largest_free_block():
    parent = ipaddress.ip_network("10.0.0.0/24")
    reserved = [ipaddress.ip_network("10.0.0.64/26"), ipaddress.ip_network("10.0.0.128/26")]
    with pytest.raises(CapacityError) as ei:
        allocate(parent, [SubnetRequest("a", 25)], reserved=reserved)
    assert ei.value.largest_free_prefixlen == 26
    assert ei.value.label == "a"


def test_allocator_tracks_free_space():
    alloc = SubnetAllocator(ipaddress.ip_network("192.168.0.0/24"))
    alloc.next_subnet(26)
    assert alloc.free_addresses == 192
    assert [str(b) for b in alloc.free_blocks()] == ["192.168.0.64/26", "192.168.0.128/25"]


def test_ipv6_allocation():
    parent = ipaddress.ip_network("fd00::/56")
    out = allocate(parent, [SubnetRequest("a", 64), SubnetRequest("b", 64)])
    assert [str(v) for v in out.values()] == ["fd00::/64", "fd00:0:0:1::/64"]


def test_delta_and_count_helpers():
    reqs = requests_from_deltas(NET, [("a", 8), ("b", 4)])
    assert [r.prefixlen for r in reqs] == [24, 20]
    even = split_evenly(NET, ["a", "b", "c"])
    assert [r.prefixlen for r in even] == [18, 18, 18]
    out = allocate(NET, even)
    assert [str(v) for v in out.values()] == ["10.0.0.0/18", "10.0.64.0/18", "10.0.128.0/18"]
