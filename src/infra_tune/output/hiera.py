"""
Hiera YAML output.

Writes one file per node with its remaining settings under nodes/,
and one common.yaml with the settings shared by every contributing node.

Layout
<directory>/common.yaml
<directory>/nodes/<hostname>.yaml

The writer is only called after a complete sweep, so a failed run never
leaves a partial set of files behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

import yaml

from infra_tune.core.errors import CannotCreateOutputDirectory
from infra_tune.core.serialization import to_plain
from infra_tune.core.types import CollectedNode, Settings

logger = logging.getLogger(__name__)


def _dump(settings: Settings) -> str:
    return yaml.safe_dump(to_plain(settings), default_flow_style=False, sort_keys=True)


@dataclass(frozen=True)
class HieraWriter:
    """Write settings as Hiera data files."""

    directory: Path

    @property
    def nodes_directory(self) -> Path:
        return self.directory / "nodes"

    def prepare(self) -> None:
        """
        Create the output directory and its nodes subdirectory.

        Existing directories are left as they are.
        """
        for path in (self.directory, self.nodes_directory):
            if path.is_dir():
                continue
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise CannotCreateOutputDirectory(str(path)) from exc
            if not path.is_dir():
                raise CannotCreateOutputDirectory(str(path))

    def write(self, nodes: Iterable[CollectedNode], common: Settings) -> List[Path]:
        """Write node files and common.yaml. Returns the paths written."""
        self.prepare()
        written: List[Path] = []

        for node in nodes:
            if not node.settings:
                continue
            path = self.nodes_directory / f"{node.hostname}.yaml"
            path.write_text(_dump(node.settings), encoding="utf-8")
            logger.info("Wrote Hiera YAML file: %s", path)
            written.append(path)

        if common:
            path = self.directory / "common.yaml"
            path.write_text(_dump(common), encoding="utf-8")
            logger.info("Wrote Hiera YAML file: %s", path)
            written.append(path)

        return written
