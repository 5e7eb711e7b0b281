from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Tuple

from ..constants import (
    ROUTE_TARGET_INTERNET_GATEWAY,
    ROUTE_TARGET_LOCAL,
    ROUTE_TARGET_NAT_PREFIX,
    VISIBILITY_PUBLIC,
)
from ..types import Network, RouteEntry, Subnet

logger = logging.getLogger(__name__)


def _default_destination(network: Network) -> str:
    return "0.0.0.0/0" if network.cidr.version == 4 else "::/0"


def _nat_host(private: Subnet, public_subnets: List[Subnet]) -> Optional[Subnet]:
    """Pick the public subnet that hosts the NAT gateway for a private subnet.

    Same zone first; otherwise the public subnet in the lowest zone.
    """
    if not public_subnets:
        return None
    same_zone = [s for s in public_subnets if s.zone == private.zone]
    if same_zone:
        return same_zone[0]
    return min(public_subnets, key=lambda s: s.zone)


def derive_routes(networks: Iterable[Network], subnets: Iterable[Subnet]) -> Tuple[RouteEntry, ...]:
    """Compute route table entries for every subnet.

    Each subnet routes its own network locally. Public subnets send default
    traffic to the internet gateway; private subnets send it through a NAT
    gateway placed in a public subnet. A network with no public subnet gets
    local routes only.
    """
    subnet_list = list(subnets)
    routes: List[RouteEntry] = []
    for network in networks:
        members = [s for s in subnet_list if s.network == network.name]
        public = [s for s in members if s.visibility == VISIBILITY_PUBLIC]
        default_dst = _default_destination(network)
        for sn in members:
            routes.append(RouteEntry(subnet=sn.label, destination=str(network.cidr), target=ROUTE_TARGET_LOCAL))
            if sn.visibility == VISIBILITY_PUBLIC:
                routes.append(RouteEntry(subnet=sn.label, destination=default_dst, target=ROUTE_TARGET_INTERNET_GATEWAY))
                continue
            host = _nat_host(sn, public)
            if host is None:
                logger.debug("Network %s has no public subnet; %s gets no default route", network.name, sn.label)
                continue
            routes.append(RouteEntry(subnet=sn.label, destination=default_dst, target=f"{ROUTE_TARGET_NAT_PREFIX}{host.label}"))
    return tuple(routes)


def nat_gateway_hosts(routes: Iterable[RouteEntry]) -> List[str]:
    """Public subnet labels that need a NAT gateway, in first-use order."""
    out: List[str] = []
    for r in routes:
        if r.target.startswith(ROUTE_TARGET_NAT_PREFIX):
            host = r.target[len(ROUTE_TARGET_NAT_PREFIX):]
            if host not in out:
                out.append(host)
    return out
