from __future__ import annotations
import logging
from typing import Dict, Iterable, Set, Tuple

from ..constants import DIRECTION_BIDIRECTIONAL, DIRECTION_EGRESS, DIRECTION_INGRESS
from ..errors import ValidationError
from ..types import AccessRule, ConnectivityIntent, Selector, Service

logger = logging.getLogger(__name__)

# (source, destination, port, protocol, effect)
IntentKey = Tuple[str, str, int, str, str]


def derive_access_rules(
    services: Iterable[Service],
    intents: Iterable[ConnectivityIntent],
) -> Tuple[AccessRule, ...]:
    """Expand connectivity intents into directional access rules.

    - Every intent src->dst:port/proto yields an egress rule on the source
      boundary and an ingress rule on the destination boundary.
    - Repeated intents collapse into the same rules.
    - A pair of opposite intents (src->dst and dst->src on the same
      port/protocol/effect) yields one bidirectional rule per side instead of
      four one-way rules.

    Rules are returned sorted by (source service, destination service, port),
    then protocol, direction and effect.
    """
    by_name: Dict[str, Service] = {s.name: s for s in services}

    def _selector(name: str) -> Selector:
        return Selector(service=name, subnets=tuple(by_name[name].placement))

    keys: Set[IntentKey] = set()
    for it in intents:
        for svc in (it.source, it.destination):
            if svc not in by_name:
                raise ValidationError(f"intent {it.source}->{it.destination}: {svc!r} is not a declared service")
        keys.add((it.source, it.destination, it.port, it.protocol, it.effect))

    rules: Set[AccessRule] = set()
    collapsed = 0
    for src, dst, port, proto, effect in keys:
        src_sel = _selector(src)
        dst_sel = _selector(dst)
        if src != dst and (dst, src, port, proto, effect) in keys:
            rules.add(AccessRule(src_sel, dst_sel, port, proto, DIRECTION_BIDIRECTIONAL, effect))
            collapsed += 1
            continue
        rules.add(AccessRule(src_sel, dst_sel, port, proto, DIRECTION_EGRESS, effect))
        rules.add(AccessRule(src_sel, dst_sel, port, proto, DIRECTION_INGRESS, effect))

    ordered = tuple(sorted(rules, key=AccessRule.sort_key))
    logger.debug(
        "Derived %d access rules from %d distinct intents (%d bidirectional)",
        len(ordered), len(keys), collapsed,
    )
    return ordered
