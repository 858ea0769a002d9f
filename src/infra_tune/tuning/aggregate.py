"""
Settings aggregation.

The aggregator keeps one CollectedNode per processed node, in processing order.

Common settings extraction
For every setting name, gather the values of the nodes that define it.
When those values are all equal, the setting moves into the common
settings and is removed from each of those nodes.

Note
A setting defined by a single node has one distinct value, so it is promoted
as well, and will later apply to the whole cluster. That is the behavior
callers have always observed, so it is kept.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from infra_tune.core.types import CollectedNode, NodeResources, Settings, Totals

logger = logging.getLogger(__name__)


def _distinct(values: List[Any]) -> List[Any]:
    # Values may be unhashable, such as lists of java args.
    # 1, 1.0 and True compare equal but are different settings.
    out: List[Any] = []
    for v in values:
        if not any(type(o) is type(v) and o == v for o in out):
            out.append(v)
    return out


class SettingsAggregator:
    """
    Ordered collection of processed nodes.

    extract controls whether extract_common does anything.
    """

    def __init__(self, extract: bool = False) -> None:
        self._extract = extract
        self._nodes: Dict[str, CollectedNode] = {}
        self._common: Settings = {}

    def collect(
        self,
        hostname: str,
        role_label: str,
        resources: NodeResources,
        settings: Settings,
        totals: Totals,
    ) -> CollectedNode:
        """Record a processed node. A host collected twice keeps its first position."""
        node = CollectedNode(
            hostname=hostname,
            role_label=role_label,
            resources=resources,
            settings=dict(settings),
            totals=dict(totals),
        )
        self._nodes[hostname] = node
        return node

    def nodes(self) -> List[CollectedNode]:
        """Return collected nodes in processing order."""
        return list(self._nodes.values())

    @property
    def common(self) -> Settings:
        return dict(self._common)

    def extract_common(self) -> Settings:
        """
        Move settings with a single distinct value into the common settings.

        Returns the common settings. Returns an empty dict when extraction is off.
        """
        if not self._extract:
            return {}

        nodes_with_setting: Dict[str, Dict[str, Any]] = {}
        for node in self._nodes.values():
            for name, value in node.settings.items():
                nodes_with_setting.setdefault(name, {})[node.hostname] = value

        for name, by_host in nodes_with_setting.items():
            values = _distinct(list(by_host.values()))
            if len(values) != 1:
                continue
            logger.debug("Extracting common setting %s from %s", name, sorted(by_host))
            self._common[name] = values[0]
            for hostname in by_host:
                del self._nodes[hostname].settings[name]

        return self.common
