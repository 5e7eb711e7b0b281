from __future__ import annotations
import ipaddress
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple, Union

from .constants import (
    DIRECTION_EGRESS,
    DIRECTION_INGRESS,
    EFFECT_ALLOW,
    DEFAULT_PROTOCOL,
)

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


@dataclass(frozen=True)
class Network:
    name: str
    cidr: IPNetwork


@dataclass(frozen=True)
class Subnet:
    network: str
    label: str
    zone: int
    visibility: str
    # Requested prefix length; equals cidr.prefixlen for pinned subnets.
    prefixlen: int
    # Set when pinned by the caller or after allocation.
    cidr: Optional[IPNetwork] = None
    pinned: bool = False

    def with_cidr(self, cidr: IPNetwork) -> "Subnet":
        return replace(self, cidr=cidr)


@dataclass(frozen=True)
class Service:
    name: str
    ports: Tuple[int, ...]
    visibility: str
    placement: Tuple[str, ...]


@dataclass(frozen=True)
class ConnectivityIntent:
    source: str
    destination: str
    port: int
    protocol: str = DEFAULT_PROTOCOL
    effect: str = EFFECT_ALLOW


@dataclass(frozen=True, order=True)
class Selector:
    """A service boundary: the service name and the subnets it is placed in."""
    service: str
    subnets: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AccessRule:
    source: Selector
    destination: Selector
    port: int
    protocol: str
    direction: str
    effect: str = EFFECT_ALLOW

    @property
    def boundary(self) -> Selector:
        # Ingress rules live on the destination side; egress and bidirectional on the source side.
        if self.direction == DIRECTION_INGRESS:
            return self.destination
        return self.source

    def sort_key(self) -> Tuple[str, str, int, str, str, str]:
        return (
            self.source.service,
            self.destination.service,
            self.port,
            self.protocol,
            self.direction,
            self.effect,
        )

    def describe(self) -> str:
        arrow = "<-" if self.direction == DIRECTION_INGRESS else ("->" if self.direction == DIRECTION_EGRESS else "<->")
        if self.direction == DIRECTION_INGRESS:
            pair = f"{self.destination.service}{arrow}{self.source.service}"
        else:
            pair = f"{self.source.service}{arrow}{self.destination.service}"
        return f"{self.effect} {self.direction} {pair}:{self.port}/{self.protocol}"


@dataclass(frozen=True)
class RouteEntry:
    subnet: str
    destination: str
    target: str


@dataclass(frozen=True)
class Conflict:
    kind: str
    entities: Tuple[str, ...]
    message: str

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"


@dataclass(frozen=True)
class Plan:
    networks: Tuple[Network, ...]
    subnets: Tuple[Subnet, ...]
    services: Tuple[Service, ...]
    rules: Tuple[AccessRule, ...] = ()
    routes: Tuple[RouteEntry, ...] = ()
    validated: bool = False
    _subnet_index: Dict[str, Subnet] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index = {s.label: s for s in self.subnets}
        object.__setattr__(self, "_subnet_index", index)

    def subnet(self, label: str) -> Optional[Subnet]:
        return self._subnet_index.get(label)

    def service(self, name: str) -> Optional[Service]:
        for svc in self.services:
            if svc.name == name:
                return svc
        return None

    def network(self, name: str) -> Optional[Network]:
        for net in self.networks:
            if net.name == name:
                return net
        return None

    def mark_validated(self) -> "Plan":
        return replace(self, validated=True)
