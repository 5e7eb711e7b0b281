from __future__ import annotations
import ipaddress
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..constants import (
    DEFAULT_PROTOCOL,
    DEFAULT_SUBNET_PREFIXLEN,
    EFFECT_ALLOW,
    EFFECTS,
    PROTOCOLS,
    VISIBILITIES,
)
from ..errors import ValidationError
from ..types import ConnectivityIntent, IPNetwork, Network, Service, Subnet

logger = logging.getLogger(__name__)


def parse_cidr(raw: object, what: str) -> IPNetwork:
    try:
        net = ipaddress.ip_network(str(raw).strip(), strict=True)
    except ValueError as e:
        raise ValidationError(f"{what}: malformed CIDR {raw!r}: {e}") from e
    return net


def _check_port(port: object, what: str) -> int:
    if isinstance(port, bool):
        raise ValidationError(f"{what}: port must be an integer, got {port!r}")
    try:
        value = int(port)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{what}: port must be an integer, got {port!r}") from e
    if str(value) != str(port).strip():
        raise ValidationError(f"{what}: port must be an integer, got {port!r}")
    if not 1 <= value <= 65535:
        raise ValidationError(f"{what}: port {value} out of range 1-65535")
    return value


def _check_int(value: object, what: str) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{what} must be an integer, got {value!r}")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{what} must be an integer, got {value!r}") from e


def _check_choice(value: object, allowed: Tuple[str, ...], what: str) -> str:
    v = str(value or "").strip().lower()
    if v not in allowed:
        raise ValidationError(f"{what}: {value!r} is not one of {list(allowed)}")
    return v


class TopologyModel:
    """Mutable declarations for one planning run.

    Every add_* call validates its arguments against what has already been
    declared and returns the stored record. Nothing here is shared between
    instances.
    """

    def __init__(self) -> None:
        self._networks: Dict[str, Network] = {}
        self._subnets: Dict[str, Subnet] = {}
        self._services: Dict[str, Service] = {}
        self._intents: List[ConnectivityIntent] = []

    # --- declarations -------------------------------------------------

    def add_network(self, name: str, cidr: str) -> Network:
        name = str(name or "").strip()
        if not name:
            raise ValidationError("network name is required")
        if name in self._networks:
            raise ValidationError(f"duplicate network name: {name}")
        net = parse_cidr(cidr, f"network {name}")
        if net.prefixlen == 0:
            raise ValidationError(f"network {name}: prefix length must be non-zero, got {net}")
        record = Network(name=name, cidr=net)
        self._networks[name] = record
        logger.debug("Declared network %s %s", name, net)
        return record

    def add_subnet(
        self,
        network_name: str,
        label: str,
        zone: int = 0,
        visibility: str = "private",
        prefixlen: Optional[int] = None,
        prefix_delta: Optional[int] = None,
        cidr: Optional[str] = None,
    ) -> Subnet:
        network = self._networks.get(network_name)
        if network is None:
            raise ValidationError(f"subnet {label}: undeclared network {network_name!r}")
        label = str(label or "").strip()
        if not label:
            raise ValidationError(f"subnet in {network_name}: label is required")
        if label in self._subnets:
            raise ValidationError(f"duplicate subnet label: {label}")
        vis = _check_choice(visibility, VISIBILITIES, f"subnet {label} visibility")
        zone_i = _check_int(zone, f"subnet {label}: zone")
        if zone_i < 0:
            raise ValidationError(f"subnet {label}: zone must be >= 0, got {zone_i}")

        given = [x is not None for x in (prefixlen, prefix_delta, cidr)]
        if sum(given) > 1:
            raise ValidationError(f"subnet {label}: give only one of prefixlen, prefix_delta or cidr")

        parent = network.cidr
        pinned: Optional[IPNetwork] = None
        if cidr is not None:
            pinned = parse_cidr(cidr, f"subnet {label}")
            if pinned.version != parent.version or not pinned.subnet_of(parent) or pinned == parent:  # type: ignore[arg-type]
                raise ValidationError(f"subnet {label}: {pinned} is not strictly inside {network_name} {parent}")
            plen = pinned.prefixlen
        elif prefix_delta is not None:
            plen = parent.prefixlen + _check_int(prefix_delta, f"subnet {label}: prefix_delta")
        elif prefixlen is not None:
            plen = _check_int(prefixlen, f"subnet {label}: prefixlen")
        else:
            plen = DEFAULT_SUBNET_PREFIXLEN

        if plen > parent.max_prefixlen:
            raise ValidationError(f"subnet {label}: prefix length /{plen} exceeds /{parent.max_prefixlen}")
        if plen <= parent.prefixlen:
            raise ValidationError(f"subnet {label}: /{plen} is not smaller than {network_name} {parent}")

        record = Subnet(
            network=network.name,
            label=label,
            zone=zone_i,
            visibility=vis,
            prefixlen=plen,
            cidr=pinned,
            pinned=pinned is not None,
        )
        self._subnets[label] = record
        return record

    def add_service(
        self,
        name: str,
        ports: Iterable[object],
        visibility: str = "private",
        placement_labels: Iterable[str] = (),
    ) -> Service:
        name = str(name or "").strip()
        if not name:
            raise ValidationError("service name is required")
        if name in self._services:
            raise ValidationError(f"duplicate service name: {name}")
        vis = _check_choice(visibility, VISIBILITIES, f"service {name} visibility")
        port_set = sorted({_check_port(p, f"service {name}") for p in (ports or [])})
        placement: List[str] = []
        for raw in placement_labels or []:
            lbl = str(raw).strip()
            if lbl not in self._subnets:
                raise ValidationError(f"service {name}: placement references undeclared subnet {lbl!r}")
            if lbl not in placement:
                placement.append(lbl)
        record = Service(name=name, ports=tuple(port_set), visibility=vis, placement=tuple(placement))
        self._services[name] = record
        return record

    def add_intent(
        self,
        source: str,
        destination: str,
        port: object,
        protocol: str = DEFAULT_PROTOCOL,
        effect: str = EFFECT_ALLOW,
    ) -> ConnectivityIntent:
        for role, svc in (("source", source), ("destination", destination)):
            if svc not in self._services:
                raise ValidationError(f"intent {source}->{destination}: {role} {svc!r} is not a declared service")
        what = f"intent {source}->{destination}"
        record = ConnectivityIntent(
            source=source,
            destination=destination,
            port=_check_port(port, what),
            protocol=_check_choice(protocol, PROTOCOLS, f"{what} protocol"),
            effect=_check_choice(effect, EFFECTS, f"{what} effect"),
        )
        self._intents.append(record)
        return record

    def remove_service(self, name: str) -> None:
        if name not in self._services:
            raise ValidationError(f"cannot remove undeclared service {name!r}")
        users = [f"{i.source}->{i.destination}:{i.port}" for i in self._intents if name in (i.source, i.destination)]
        if users:
            raise ValidationError(f"service {name} is still referenced by intents: {', '.join(users)}")
        del self._services[name]

    # --- views ----------------------------------------------------------

    @property
    def networks(self) -> Tuple[Network, ...]:
        return tuple(self._networks.values())

    @property
    def subnets(self) -> Tuple[Subnet, ...]:
        return tuple(self._subnets.values())

    @property
    def services(self) -> Tuple[Service, ...]:
        return tuple(self._services.values())

    @property
    def intents(self) -> Tuple[ConnectivityIntent, ...]:
        return tuple(self._intents)

    def network(self, name: str) -> Optional[Network]:
        return self._networks.get(name)

    def subnets_of(self, network_name: str) -> List[Subnet]:
        return [s for s in self._subnets.values() if s.network == network_name]

    def summary(self) -> Dict[str, int]:
        return {
            "networks": len(self._networks),
            "subnets": len(self._subnets),
            "services": len(self._services),
            "intents": len(self._intents),
        }
