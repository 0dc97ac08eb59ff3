# provisioner/config/registries.py
"""Read-only registries loaded once per run from YAML files."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Mapping, Optional, Tuple, Union

import yaml

from provisioner.core.errors import ProvisionerError

logger = logging.getLogger(__name__)


def _load_yaml_mapping(path: Union[str, Path]) -> Optional[dict]:
    """Load a YAML file that must contain a mapping. Missing file -> None."""
    path = Path(path)
    if not path.exists():
        return None

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ProvisionerError(f"Registry {path} is not valid YAML: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProvisionerError(f"Registry {path} must contain a mapping")
    return data


# ============================================
# RESERVED SUBDOMAINS
# ============================================

@dataclass(frozen=True)
class ReservedNameRegistry:
    """Reserved subdomain names and blocked prefixes (lower-cased)."""
    reserved: FrozenSet[str] = frozenset()
    blocked_prefixes: Tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping) -> "ReservedNameRegistry":
        reserved = frozenset(str(name).lower() for name in data.get("reserved") or [])
        prefixes = tuple(str(prefix).lower() for prefix in data.get("blocked_prefixes") or [])
        return cls(reserved=reserved, blocked_prefixes=prefixes)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ReservedNameRegistry":
        data = _load_yaml_mapping(path)
        if data is None:
            logger.warning(f"[registry] reserved subdomains file {path} not found, nothing is reserved")
            return cls()
        registry = cls.from_mapping(data)
        logger.info(
            f"[registry] loaded {len(registry.reserved)} reserved names, "
            f"{len(registry.blocked_prefixes)} blocked prefixes"
        )
        return registry


# ============================================
# GITHUB ORGANIZATIONS
# ============================================

@dataclass(frozen=True)
class OrgCapabilities:
    """Transport capabilities registered for a source owner."""
    github_id: Optional[str] = None
    ssh_key_id: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class OrgRegistry:
    """Source owners with registered integration identities or deploy keys."""
    orgs: Dict[str, OrgCapabilities] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping) -> "OrgRegistry":
        orgs = {}
        for name, entry in (data.get("orgs") or {}).items():
            entry = entry or {}
            orgs[str(name).lower()] = OrgCapabilities(
                github_id=entry.get("githubId"),
                ssh_key_id=entry.get("sshKeyId"),
                description=entry.get("description"),
            )
        return cls(orgs=orgs)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "OrgRegistry":
        data = _load_yaml_mapping(path)
        if data is None:
            return cls()
        return cls.from_mapping(data)

    def lookup(self, owner: str) -> OrgCapabilities:
        """Case-insensitive lookup; unknown owners have no capabilities."""
        return self.orgs.get(owner.lower(), OrgCapabilities())


# ============================================
# SECRETS
# ============================================

class SecretNamespace:
    """Process-wide secrets exposed as SECRET_{name} variables."""

    PREFIX = "SECRET_"

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = dict(os.environ if environ is None else environ)

    def key_for(self, secret: str) -> str:
        return f"{self.PREFIX}{secret}"

    def resolve(self, secret: str) -> Optional[str]:
        value = self._environ.get(self.key_for(secret))
        return value if value else None
