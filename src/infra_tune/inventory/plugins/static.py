"""
Static inventory plugin.

Reads a local YAML file that declares infrastructure nodes and, optionally,
their roles. This removes the dependency on PuppetDB to query node resources
and classes.

Schema example
nodes:
  master.example.com:
    resources:
      cpu: 8
      ram: 16g
  compile1.example.com:
    resources:
      cpu: 4
      ram: 8g
roles:
  puppet_master_host: master.example.com
  compile_master: compile1.example.com

compile_master and puppetdb_host may be a string or a list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from infra_tune.core.errors import InvalidInventory
from infra_tune.core.types import RoleMap
from infra_tune.inventory.plugins.base import TopologyDocument, TopologySource
from infra_tune.inventory.store import InventoryStore, NodeEntry

logger = logging.getLogger(__name__)


def _entry_from_dict(hostname: str, obj: Any) -> NodeEntry:
    """Convert a node mapping into a NodeEntry."""
    if not isinstance(obj, dict):
        return NodeEntry(hostname=hostname)
    resources = obj.get("resources", {}) or {}
    if not isinstance(resources, dict):
        resources = {}
    return NodeEntry(
        hostname=hostname,
        cpu=resources.get("cpu"),
        ram=resources.get("ram"),
    )


def parse_inventory(data: Any) -> TopologyDocument:
    """
    Normalize a parsed inventory document.

    A missing nodes mapping is fatal. An empty one declares no nodes,
    so every resource query goes to the fallback provider.
    A missing roles mapping means no roles are declared.
    """
    if not isinstance(data, dict):
        data = {}

    nodes = data.get("nodes")
    if not isinstance(nodes, dict):
        raise InvalidInventory("The inventory file does not contain a nodes hash")

    store = InventoryStore()
    for hostname, obj in nodes.items():
        store.add(_entry_from_dict(str(hostname), obj))

    roles = data.get("roles") or {}
    if not isinstance(roles, dict):
        raise InvalidInventory("The inventory file roles section must be a hash")

    return TopologyDocument(roles=RoleMap.from_mapping(roles), nodes=store)


@dataclass(frozen=True)
class StaticInventoryPlugin(TopologySource):
    """
    Load topology from a local YAML inventory file.

    path points to a file that matches the schema described in the module docstring.
    """

    path: Path

    def load(self) -> TopologyDocument:
        if not self.path.is_file():
            raise InvalidInventory(f"The inventory file {self.path} does not exist")

        logger.debug("Using the inventory file %s to define infrastructure nodes", self.path)
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            # An unparseable file reads as an empty document.
            logger.debug("Unable to parse inventory file %s: %s", self.path, exc)
            data = {}

        return parse_inventory(data)
