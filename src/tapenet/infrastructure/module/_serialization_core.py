"""
Topology registry used for JSON checkpoints.

A checkpoint records which topology produced its weights together with the
topology's constructor options, so that `TrainableModel.load_json` can
rebuild the right wiring without the caller naming it again.

Node format
-----------
    {"type": "FeedForwardTopology", "config": {"activation": "tanh"}}
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Tuple, Type

from ...domain._errors import MalformedModelError

_TOPOLOGY_REGISTRY: dict[str, Type[Any]] = {}


def register_topology(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register a topology class for JSON deserialization.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _TOPOLOGY_REGISTRY[key] = cls
        return cls

    return deco


def registered_topologies() -> tuple[str, ...]:
    return tuple(sorted(_TOPOLOGY_REGISTRY))


def topology_to_config(topology: Any) -> dict[str, Any]:
    """
    Describe a topology instance as ``{"type", "config"}``.
    """
    get_cfg = getattr(topology, "get_config", None)
    cfg = get_cfg() if callable(get_cfg) else {}
    return {"type": topology.__class__.__name__, "config": cfg}


def topology_from_config(node: Any) -> Tuple[Type[Any], Dict[str, Any]]:
    """
    Resolve a ``{"type", "config"}`` node to a registered class and its options.

    Raises
    ------
    MalformedModelError
        If the node is malformed or names an unregistered topology.
    """
    if not isinstance(node, dict) or "type" not in node:
        raise MalformedModelError("missing topology type", "topology")

    type_name = str(node["type"])
    if type_name not in _TOPOLOGY_REGISTRY:
        raise MalformedModelError(
            f"Unknown topology type '{type_name}'. "
            f"Available: {', '.join(registered_topologies()) or '<none>'}",
            "topology",
        )

    cfg = node.get("config", {}) or {}
    if not isinstance(cfg, dict):
        raise MalformedModelError("topology config must be an object", "topology")

    cls = _TOPOLOGY_REGISTRY[type_name]
    check = getattr(cls, "check_config", None)
    if callable(check):
        try:
            check(cfg)
        except ValueError as e:
            raise MalformedModelError(str(e), "topology") from e
    return cls, dict(cfg)
