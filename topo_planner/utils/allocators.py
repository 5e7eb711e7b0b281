from __future__ import annotations
import ipaddress
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..errors import CapacityError, ValidationError
from ..types import IPNetwork, Network

logger = logging.getLogger(__name__)

# (network address as int, prefix length)
Block = Tuple[int, int]


@dataclass(frozen=True)
class SubnetRequest:
    label: str
    prefixlen: int


class SubnetAllocator:
    """Allocate subnets from a base network by binary subdivision.

    The free pool starts as the whole base block. Each request takes the
    smallest free block that can hold it (lowest address on ties) and halves it
    until it matches; the unused halves stay in the pool. With power-of-two
    sizes the pool never holds two free blocks of the same size unless
    reservations fragmented it, so nothing is wasted to alignment.
    """

    def __init__(self, base: IPNetwork, reserved: Iterable[IPNetwork] = ()):
        self.base = base
        self._max = base.max_prefixlen
        self._free: List[Block] = [(int(base.network_address), base.prefixlen)]
        for net in reserved:
            self.reserve(net)

    def block_size(self, prefixlen: int) -> int:
        return 1 << (self._max - prefixlen)

    @property
    def free_addresses(self) -> int:
        return sum(self.block_size(p) for _, p in self._free)

    def largest_free_prefixlen(self) -> Optional[int]:
        return min((p for _, p in self._free), default=None)

    def free_blocks(self) -> List[IPNetwork]:
        return [self._to_network(b) for b in sorted(self._free)]

    def _to_network(self, block: Block) -> IPNetwork:
        return ipaddress.ip_network((self._address(block[0]), block[1]))

    def _address(self, value: int):
        if self.base.version == 4:
            return ipaddress.IPv4Address(value)
        return ipaddress.IPv6Address(value)

    def _contains(self, outer: Block, addr: int, prefixlen: int) -> bool:
        o_addr, o_plen = outer
        if o_plen > prefixlen:
            return False
        shift = self._max - o_plen
        return (addr >> shift) == (o_addr >> shift)

    def _split(self, block: Block) -> Tuple[Block, Block]:
        self._free.remove(block)
        addr, plen = block
        low = (addr, plen + 1)
        high = (addr + self.block_size(plen + 1), plen + 1)
        self._free.extend([low, high])
        return low, high

    def reserve(self, net: IPNetwork) -> None:
        """Remove a pinned block from the free pool.

        Reservations that overlap an earlier reservation are tolerated here;
        the conflict checker reports the overlap.
        """
        if net.version != self.base.version or not net.subnet_of(self.base):  # type: ignore[arg-type]
            raise ValidationError(f"reserved block {net} is not inside {self.base}")
        addr, plen = int(net.network_address), net.prefixlen
        while True:
            holder = next((b for b in self._free if b[1] < plen and self._contains(b, addr, plen)), None)
            if holder is None:
                break
            self._split(holder)
        self._free = [b for b in self._free if not self._contains((addr, plen), b[0], b[1])]

    def next_subnet(self, prefixlen: int, label: Optional[str] = None) -> IPNetwork:
        name = label or f"/{prefixlen}"
        if prefixlen > self._max:
            raise ValidationError(f"{name}: prefix length /{prefixlen} exceeds /{self._max}")
        requested = self.block_size(prefixlen)
        candidates = [b for b in self._free if b[1] <= prefixlen]
        if prefixlen < self.base.prefixlen or not candidates:
            largest = self.largest_free_prefixlen()
            raise CapacityError(
                f"{name}: no free block in {self.base} can hold /{prefixlen} "
                f"(requested {requested} addresses, {self.free_addresses} available, "
                f"largest free block {'/' + str(largest) if largest is not None else 'none'})",
                label=label,
                requested=requested,
                available=self.free_addresses,
                largest_free_prefixlen=largest,
            )
        # Smallest block first (largest prefix length), then lowest address.
        block = min(candidates, key=lambda b: (-b[1], b[0]))
        while block[1] < prefixlen:
            block, _ = self._split(block)
        self._free.remove(block)
        return self._to_network(block)


def _base_of(network: Union[Network, IPNetwork]) -> Tuple[str, IPNetwork]:
    if isinstance(network, Network):
        return network.name, network.cidr
    return str(network), network


def allocate(
    network: Union[Network, IPNetwork],
    requests: Sequence[SubnetRequest],
    reserved: Iterable[IPNetwork] = (),
) -> Dict[str, IPNetwork]:
    """Assign a CIDR to every request, in request order.

    Raises CapacityError when the requests do not fit into the free space of
    the network. Identical input always yields identical output.
    """
    name, base = _base_of(network)
    seen: set[str] = set()
    for req in requests:
        if req.label in seen:
            raise ValidationError(f"duplicate subnet request label: {req.label}")
        seen.add(req.label)

    allocator = SubnetAllocator(base, reserved)
    requested_total = sum(allocator.block_size(r.prefixlen) for r in requests if r.prefixlen <= base.max_prefixlen)
    available = allocator.free_addresses
    if requested_total > available:
        raise CapacityError(
            f"{name}: requested {requested_total} addresses across {len(requests)} subnets "
            f"but only {available} available in {base}",
            requested=requested_total,
            available=available,
            largest_free_prefixlen=allocator.largest_free_prefixlen(),
        )

    out: Dict[str, IPNetwork] = {}
    for req in requests:
        out[req.label] = allocator.next_subnet(req.prefixlen, label=req.label)
    logger.debug(
        "Allocated %d subnets in %s (%s); %d addresses left",
        len(out), name, base, allocator.free_addresses,
    )
    return out


def requests_from_deltas(
    network: Union[Network, IPNetwork],
    deltas: Sequence[Tuple[str, int]],
) -> List[SubnetRequest]:
    """Turn (label, prefix delta) pairs into absolute subnet requests."""
    _, base = _base_of(network)
    out: List[SubnetRequest] = []
    for label, delta in deltas:
        if delta < 1:
            raise ValidationError(f"{label}: prefix delta must be >= 1, got {delta}")
        out.append(SubnetRequest(label=label, prefixlen=base.prefixlen + int(delta)))
    return out


def split_evenly(network: Union[Network, IPNetwork], labels: Sequence[str]) -> List[SubnetRequest]:
    """Split a network into equal blocks, one per label.

    Uses the smallest power-of-two split that yields at least len(labels) blocks.
    """
    _, base = _base_of(network)
    if not labels:
        return []
    delta = max(1, (len(labels) - 1).bit_length())
    if base.prefixlen + delta > base.max_prefixlen:
        raise CapacityError(
            f"{base}: cannot split into {len(labels)} subnets",
            requested=len(labels),
            available=base.num_addresses,
        )
    return [SubnetRequest(label=label, prefixlen=base.prefixlen + delta) for label in labels]
