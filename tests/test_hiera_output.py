from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from infra_tune.core.errors import CannotCreateOutputDirectory
from infra_tune.core.types import CollectedNode, NodeResources
from infra_tune.output.hiera import HieraWriter

RES = NodeResources(cpu=8, ram_mb=16384)


def test_prepare_is_idempotent(tmp_path: Path):
    writer = HieraWriter(tmp_path / "hiera")
    writer.prepare()
    writer.prepare()
    assert (tmp_path / "hiera" / "nodes").is_dir()


def test_prepare_fails_when_path_is_a_file(tmp_path: Path):
    target = tmp_path / "hiera"
    target.write_text("not a directory", encoding="utf-8")
    with pytest.raises(CannotCreateOutputDirectory) as exc:
        HieraWriter(target).prepare()
    assert exc.value.path == str(target)


def test_write_nodes_and_common(tmp_path: Path):
    writer = HieraWriter(tmp_path)
    nodes = [
        CollectedNode("m1", "Primary Master", RES, settings={"b": 2, "a": {"Xmx": "2048m"}}),
        CollectedNode("cm1", "Compile Master", RES, settings={}),
    ]

    written = writer.write(nodes, {"shared": 4})

    assert written == [tmp_path / "nodes" / "m1.yaml", tmp_path / "common.yaml"]
    assert not (tmp_path / "nodes" / "cm1.yaml").exists()

    text = (tmp_path / "nodes" / "m1.yaml").read_text(encoding="utf-8")
    assert text.index("a:") < text.index("b:")
    assert yaml.safe_load(text) == {"a": {"Xmx": "2048m"}, "b": 2}
    assert yaml.safe_load((tmp_path / "common.yaml").read_text(encoding="utf-8")) == {"shared": 4}


def test_empty_common_is_not_written(tmp_path: Path):
    writer = HieraWriter(tmp_path)
    writer.write([CollectedNode("m1", "Primary Master", RES, settings={"a": 1})], {})
    assert not (tmp_path / "common.yaml").exists()
