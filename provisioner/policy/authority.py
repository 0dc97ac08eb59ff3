# provisioner/policy/authority.py

from typing import Optional

from provisioner.config.registries import ReservedNameRegistry


class SubdomainAuthority:
    """Lookups against the reserved subdomain registry."""

    def __init__(self, registry: ReservedNameRegistry):
        self._registry = registry

    def is_reserved(self, name: str) -> bool:
        return name.lower() in self._registry.reserved

    def matches_blocked_prefix(self, name: str) -> Optional[str]:
        """Return the first blocked prefix `name` starts with, or None."""
        folded = name.lower()
        for prefix in self._registry.blocked_prefixes:
            if folded.startswith(prefix):
                return prefix
        return None
