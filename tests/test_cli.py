from __future__ import annotations

import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from infra_tune.cli import app

runner = CliRunner()

BACKEND = "infra_tune.providers.mock:demo_backend"
CLEAN_ENV = {"TEST_CPU": None, "TEST_RAM": None, "INFRA_TUNE_BACKEND": None}


def write_pe_conf(tmp_path: Path, primary: str = "m1") -> Path:
    path = tmp_path / "pe.conf"
    path.write_text(json.dumps({"puppet_enterprise::puppet_master_host": primary}), encoding="utf-8")
    return path


def write_inventory(tmp_path: Path, nodes: dict, roles: dict | None = None) -> Path:
    document = {"nodes": {h: {"resources": r} for h, r in nodes.items()}}
    if roles:
        document["roles"] = roles
    path = tmp_path / "inventory.yaml"
    path.write_text(yaml.safe_dump(document), encoding="utf-8")
    return path


def invoke(*args: str):
    return runner.invoke(app, list(args), env=CLEAN_ENV)


def test_optimize_monolithic_with_demo_backend(tmp_path: Path):
    result = invoke(
        "optimize",
        "--backend", BACKEND,
        "--pe-conf", str(write_pe_conf(tmp_path)),
        "--certname", "m1",
    )
    assert result.exit_code == 0, result.output
    assert "Monolithic" in result.output
    assert "jruby_max_active_instances" in result.output


def test_optimize_with_inventory_writes_common_hiera(tmp_path: Path):
    inventory = write_inventory(
        tmp_path,
        nodes={"m1": {"cpu": 8, "ram": "16g"}, "cm1": {"cpu": 8, "ram": "16g"}},
        roles={"compile_master": "cm1"},
    )
    hiera = tmp_path / "hiera"

    result = invoke(
        "optimize",
        "--backend", BACKEND,
        "--pe-conf", str(write_pe_conf(tmp_path)),
        "--certname", "m1",
        "--inventory", str(inventory),
        "--common",
        "--hiera", str(hiera),
    )

    assert result.exit_code == 0, result.output
    common = yaml.safe_load((hiera / "common.yaml").read_text(encoding="utf-8"))
    assert common["puppet_enterprise::master::puppetserver::jruby_max_active_instances"] == 3
    # Every setting was shared, so no node file remains.
    assert list((hiera / "nodes").iterdir()) == []


def test_optimize_estimate_prints_capacity(tmp_path: Path):
    result = invoke(
        "optimize",
        "--backend", BACKEND,
        "--pe-conf", str(write_pe_conf(tmp_path)),
        "--certname", "m1",
        "--estimate",
    )
    assert result.exit_code == 0, result.output
    assert "Estimated Capacity" in result.output


def test_conflicting_overrides_exit_with_error(tmp_path: Path):
    result = invoke(
        "optimize",
        "--backend", BACKEND,
        "--pe-conf", str(write_pe_conf(tmp_path)),
        "--certname", "m1",
        "--inventory", str(tmp_path / "inventory.yaml"),
        "--local",
    )
    assert result.exit_code == 1
    assert "mutually exclusive" in result.output


def test_undersized_node_exits_without_writing(tmp_path: Path):
    inventory = write_inventory(
        tmp_path,
        nodes={"m1": {"cpu": 8, "ram": "16g"}, "cm1": {"cpu": 2, "ram": "4g"}},
        roles={"compile_master": ["cm1"]},
    )
    hiera = tmp_path / "hiera"

    result = invoke(
        "optimize",
        "--backend", BACKEND,
        "--pe-conf", str(write_pe_conf(tmp_path)),
        "--certname", "m1",
        "--inventory", str(inventory),
        "--hiera", str(hiera),
    )

    assert result.exit_code == 1
    assert "does not meet" in result.output
    assert list((hiera / "nodes").iterdir()) == []
    assert not (hiera / "common.yaml").exists()


def test_not_running_on_primary_master(tmp_path: Path):
    result = invoke(
        "optimize",
        "--backend", BACKEND,
        "--pe-conf", str(write_pe_conf(tmp_path, primary="m1")),
        "--certname", "other",
    )
    assert result.exit_code == 1
    assert "Primary Master" in result.output


def test_current_reports_default_settings(tmp_path: Path):
    result = invoke(
        "current",
        "--backend", BACKEND,
        "--pe-conf", str(write_pe_conf(tmp_path)),
        "--certname", "m1",
    )
    assert result.exit_code == 0, result.output
    assert "Default settings found" in result.output


def test_non_integer_test_override_exits_with_error(tmp_path: Path):
    result = runner.invoke(
        app,
        ["optimize", "--backend", BACKEND, "--pe-conf", str(write_pe_conf(tmp_path)), "--certname", "m1"],
        env={**CLEAN_ENV, "TEST_CPU": "eight"},
    )
    assert result.exit_code == 1
    assert "TEST_CPU must be an integer" in result.output


def test_interpolated_primary_matches_certname(tmp_path: Path):
    result = invoke(
        "optimize",
        "--backend", BACKEND,
        "--pe-conf", str(write_pe_conf(tmp_path, primary="%{::trusted.certname}")),
        "--certname", "m1",
    )
    assert result.exit_code == 0, result.output
    assert "Monolithic" in result.output
