from __future__ import annotations

from pathlib import Path

import pytest

from infra_tune.core.errors import InvalidInventory
from infra_tune.inventory.plugins.local import LocalSystemPlugin
from infra_tune.inventory.plugins.static import StaticInventoryPlugin, parse_inventory
from infra_tune.inventory.store import InventoryStore, NodeEntry


def test_store_add_get_and_names_are_sorted():
    store = InventoryStore()
    store.add(NodeEntry(hostname="b", cpu=4, ram="8g"))
    store.add(NodeEntry(hostname="a", cpu=8, ram="16g"))

    assert store.names() == ["a", "b"]
    assert "a" in store
    assert "z" not in store
    assert len(store) == 2
    assert store.get("a").cpu == 8
    assert store.get("z") is None
    assert {e.hostname for e in store} == {"a", "b"}


def test_add_replaces_existing_entry():
    store = InventoryStore()
    store.add(NodeEntry(hostname="a", cpu=4))
    store.add(NodeEntry(hostname="a", cpu=8))
    assert len(store) == 1
    assert store.get("a").cpu == 8


def test_parse_inventory_with_roles():
    doc = parse_inventory(
        {
            "nodes": {
                "m1": {"resources": {"cpu": 8, "ram": "16g"}},
                "cm1": {"resources": {"cpu": 4, "ram": "8g"}},
                "bare": None,
            },
            "roles": {"puppet_master_host": "m1", "compile_master": "cm1"},
        }
    )

    assert doc.nodes.names() == ["bare", "cm1", "m1"]
    assert doc.nodes.get("m1").ram == "16g"
    assert not doc.nodes.get("bare").has_resources()
    assert doc.roles.puppet_master_host == "m1"
    assert doc.roles.compile_master == ("cm1",)


def test_parse_inventory_without_roles():
    doc = parse_inventory({"nodes": {"m1": {"resources": {"cpu": 8, "ram": "16g"}}}})
    assert doc.roles.puppet_master_host is None


@pytest.mark.parametrize("data", [None, {}, {"nodes": None}, {"nodes": ["m1"]}])
def test_parse_inventory_requires_nodes(data):
    with pytest.raises(InvalidInventory, match="nodes hash"):
        parse_inventory(data)


def test_parse_inventory_accepts_empty_nodes():
    doc = parse_inventory({"nodes": {}, "roles": {"compile_master": ["cm1"]}})
    assert len(doc.nodes) == 0
    assert doc.roles.compile_master == ("cm1",)


def test_static_plugin_reads_yaml(tmp_path: Path):
    path = tmp_path / "inventory.yaml"
    path.write_text(
        "nodes:\n"
        "  m1:\n"
        "    resources:\n"
        "      cpu: 8\n"
        "      ram: 16g\n"
        "roles:\n"
        "  puppet_master_host: m1\n",
        encoding="utf-8",
    )
    doc = StaticInventoryPlugin(path).load()
    assert doc.nodes.get("m1").cpu == 8
    assert doc.roles.puppet_master_host == "m1"


def test_static_plugin_missing_file(tmp_path: Path):
    with pytest.raises(InvalidInventory, match="does not exist"):
        StaticInventoryPlugin(tmp_path / "nope.yaml").load()


def test_static_plugin_unparseable_file_has_no_nodes(tmp_path: Path):
    path = tmp_path / "inventory.yaml"
    path.write_text("nodes: [unclosed\n", encoding="utf-8")
    with pytest.raises(InvalidInventory, match="nodes hash"):
        StaticInventoryPlugin(path).load()


class Probe:
    def hostname(self) -> str:
        return "local.example.com"

    def cpu_count(self) -> int:
        return 4

    def ram_bytes(self) -> int:
        return 8 * 1024 * 1024 * 1024


def test_local_plugin_describes_a_monolithic_master():
    doc = LocalSystemPlugin(probe=Probe()).load()
    entry = doc.nodes.get("local.example.com")
    assert entry.cpu == 4
    assert entry.ram == f"{8 * 1024 * 1024 * 1024}b"
    assert doc.roles.puppet_master_host == "local.example.com"
    assert doc.roles.console_host is None
