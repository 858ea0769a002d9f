from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any


def _normalize(obj: Any) -> Any:
    if hasattr(obj, "value"):
        return obj.value
    if isinstance(obj, dict):
        return {str(_normalize(k)): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_normalize(v) for v in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(_normalize(v) for v in obj)
    return obj


def to_plain(obj: Any) -> Any:
    """
    Convert enums, tuples, and sets into plain json and yaml safe values.

    Dataclasses are converted with asdict first.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)
    return _normalize(obj)


def component_map_to_dict(components: Any) -> dict[str, list[str]]:
    """
    Component map transport shape.

    Component names become strings and host sets become sorted lists.
    """
    return {c.value: sorted(hosts) for c, hosts in components.items()}
