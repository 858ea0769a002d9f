"""
Runtime context.

The tuner needs two pieces of process wide state:
the identity of the machine it runs on, and the test overrides for CPU and RAM.

We resolve both once, at startup, and pass them in explicitly.
Nothing else in the package reads the environment.
"""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass
from typing import Mapping, Optional

from infra_tune.core.errors import InvalidEnvironment

TEST_CPU_ENV = "TEST_CPU"
TEST_RAM_ENV = "TEST_RAM"


def _optional_int(name: str, raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidEnvironment(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class RuntimeContext:
    """
    Resolved process state.

    certname
    Identity of the node the tool runs on. It must be the primary master.

    test_cpu and test_ram_mb
    When set, they replace the cpu and ram_mb of every node.
    They exist for deterministic manual and acceptance testing.
    """

    certname: str
    test_cpu: Optional[int] = None
    test_ram_mb: Optional[int] = None

    @classmethod
    def from_environ(
        cls,
        certname: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "RuntimeContext":
        """
        Build a context from an environment mapping.

        certname defaults to the fully qualified hostname of this machine.
        """
        env = os.environ if environ is None else environ
        return cls(
            certname=certname or socket.getfqdn(),
            test_cpu=_optional_int(TEST_CPU_ENV, env.get(TEST_CPU_ENV)),
            test_ram_mb=_optional_int(TEST_RAM_ENV, env.get(TEST_RAM_ENV)),
        )
