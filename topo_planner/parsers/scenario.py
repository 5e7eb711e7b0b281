from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml

from ..builders.topology import TopologyModel
from ..errors import ValidationError
from .schemas import check_scenario_doc

logger = logging.getLogger(__name__)


def load_scenario_file(path: str | Path) -> Dict[str, Any]:
    """Load one scenario layer from YAML or JSON (chosen by file suffix).

    The document root must be a mapping; an empty file is an empty layer.
    """
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        try:
            if p.suffix.lower() == ".json":
                doc = json.load(f)
            else:
                doc = yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError(f"{p}: cannot parse scenario: {e}") from e
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise ValidationError(f"{p}: scenario must be a mapping at the document root")
    return doc


def _expand_subnets(network: str, entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Expand `count: N` entries into N labelled subnets, one per zone."""
    out: List[Dict[str, Any]] = []
    for entry in entries:
        count = entry.get("count")
        if not count:
            out.append(dict(entry))
            continue
        if entry.get("cidr") is not None:
            raise ValidationError(f"network {network}: subnet {entry['label']} cannot combine count with a pinned cidr")
        base_zone = int(entry.get("zone") or 0)
        for i in range(int(count)):
            item = {k: v for k, v in entry.items() if k != "count"}
            item["label"] = f"{entry['label']}-{i + 1}"
            item["zone"] = base_zone + i
            out.append(item)
    return out


def apply_scenario_doc(model: TopologyModel, doc: Dict[str, Any], source: str = "<scenario>") -> TopologyModel:
    """Validate one layer and declare its contents on `model`.

    A network entry without `cidr` extends a network declared by an earlier
    layer. Services and intents may reference anything declared so far.
    """
    check_scenario_doc(doc, source)

    for net in doc.get("networks") or []:
        name = net["name"]
        if net.get("cidr") is not None:
            model.add_network(name, net["cidr"])
        elif model.network(name) is None:
            raise ValidationError(f"{source}: network {name} has no cidr and was not declared by an earlier layer")
        for sn in _expand_subnets(name, net.get("subnets") or []):
            model.add_subnet(
                name,
                sn["label"],
                zone=sn.get("zone", 0),
                visibility=sn.get("visibility", "private"),
                prefixlen=sn.get("prefixlen"),
                prefix_delta=sn.get("prefix_delta"),
                cidr=sn.get("cidr"),
            )

    for svc in doc.get("services") or []:
        model.add_service(
            svc["name"],
            svc.get("ports") or [],
            visibility=svc.get("visibility", "private"),
            placement_labels=svc.get("placement") or [],
        )

    for it in doc.get("intents") or []:
        model.add_intent(
            it["source"],
            it["destination"],
            it["port"],
            protocol=it.get("protocol", "tcp"),
            effect=it.get("effect", "allow"),
        )

    logger.debug("Applied scenario layer %s: %s", source, model.summary())
    return model


def build_model(docs: Sequence[Dict[str, Any]], sources: Optional[Sequence[str]] = None) -> TopologyModel:
    model = TopologyModel()
    for idx, doc in enumerate(docs):
        src = sources[idx] if sources and idx < len(sources) else f"layer[{idx}]"
        apply_scenario_doc(model, doc, source=src)
    return model


def load_scenario_files(paths: Sequence[str | Path]) -> TopologyModel:
    """Load and apply scenario layers in order into a fresh model."""
    docs = [load_scenario_file(p) for p in paths]
    return build_model(docs, [str(p) for p in paths])
