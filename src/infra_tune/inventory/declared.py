"""
Declared topology.

The authoritative topology is the one the installation itself declares,
in pe.conf. It is read before any override is applied, and its primary
master must be the node the tool runs on.

pe.conf is HOCON. The installer writes it as JSON with quoted keys, which is
also valid YAML, so we read it with the YAML loader.

Keys may be fully qualified, such as puppet_enterprise::puppet_master_host,
or bare role names.

The installer usually writes the primary as an interpolated certname,
such as %{::trusted.certname}. Those tokens resolve to the certname of the
node the tool runs on when one is given.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml

from infra_tune.core.errors import InvalidInventory
from infra_tune.core.types import Role, RoleMap

PE_CONF_PREFIX = "puppet_enterprise::"
DEFAULT_PE_CONF = Path("/etc/puppetlabs/enterprise/conf.d/pe.conf")

_CERTNAME_TOKEN = re.compile(r"%\{(?:::)?(?:trusted\.certname|clientcert)\}")


class DeclaredTopology(Protocol):
    """
    Authoritative topology interface.

    roles returns the declared RoleMap.
    """

    def roles(self) -> RoleMap:
        """Return declared roles."""


@dataclass(frozen=True)
class StaticDeclaredTopology(DeclaredTopology):
    """Declared topology held in memory. Useful for tests and embedding."""

    role_map: RoleMap = field(default_factory=RoleMap)

    def roles(self) -> RoleMap:
        return self.role_map


def _interpolate(value: Any, certname: Optional[str]) -> Any:
    if certname is None:
        return value
    if isinstance(value, str):
        return _CERTNAME_TOKEN.sub(lambda _match: certname, value)
    if isinstance(value, list):
        return [_interpolate(v, certname) for v in value]
    return value


def roles_from_pe_conf(data: Any, certname: Optional[str] = None) -> RoleMap:
    """
    Extract role keys from a parsed pe.conf mapping.

    certname replaces interpolated certname tokens in role values.
    """
    if not isinstance(data, dict):
        return RoleMap()

    raw: Dict[str, Any] = {}
    for role in Role:
        qualified = PE_CONF_PREFIX + role.value
        if qualified in data:
            raw[role.value] = _interpolate(data[qualified], certname)
        elif role.value in data:
            raw[role.value] = _interpolate(data[role.value], certname)
    return RoleMap.from_mapping(raw)


@dataclass(frozen=True)
class PeConfTopology(DeclaredTopology):
    """
    Read declared roles from a pe.conf file.

    certname resolves interpolated certname tokens. Without it they stay literal.
    """

    path: Path = DEFAULT_PE_CONF
    certname: Optional[str] = None

    def roles(self) -> RoleMap:
        if not self.path.is_file():
            raise InvalidInventory(f"The pe.conf file {self.path} does not exist")
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise InvalidInventory(f"Unable to parse pe.conf file {self.path}: {exc}") from exc
        return roles_from_pe_conf(data, self.certname)
