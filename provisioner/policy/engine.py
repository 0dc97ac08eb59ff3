# provisioner/policy/engine.py
"""Policy engine - evaluates deny and warn rules against a manifest."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from provisioner.core.errors import Issue
from provisioner.manifest.schemas import Manifest
from provisioner.policy.authority import SubdomainAuthority
from provisioner.policy.rules import NAMING_RULES, SECURITY_RULES, WARN_RULES

logger = logging.getLogger(__name__)


@dataclass
class PolicyDecision:
    deny: List[Issue] = field(default_factory=list)
    warn: List[Issue] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return not self.deny


class PolicyEngine:
    """
    Runs every rule table; no rule short-circuits another.

    Security rules run per compose service, naming rules against
    metadata.name, warn rules against the manifest as a whole.
    """

    def __init__(self, authority: SubdomainAuthority):
        self._authority = authority

    def evaluate(
        self,
        manifest: Manifest,
        compose_descriptor: Optional[Mapping[str, Any]] = None,
    ) -> PolicyDecision:
        decision = PolicyDecision()

        decision.deny.extend(self.check_name(manifest.name))
        decision.deny.extend(self.check_compose(compose_descriptor))

        for rule in WARN_RULES:
            issue = rule(manifest)
            if issue is not None:
                decision.warn.append(issue)

        if decision.deny:
            logger.info(f"[policy] {manifest.name}: {len(decision.deny)} denial(s)")

        return decision

    def check_name(self, name: str) -> List[Issue]:
        issues = []
        for rule in NAMING_RULES:
            issue = rule(name, self._authority)
            if issue is not None:
                issues.append(issue)
        return issues

    def check_compose(self, compose_descriptor: Optional[Mapping[str, Any]]) -> List[Issue]:
        if not compose_descriptor:
            return []

        services = compose_descriptor.get("services")
        if not isinstance(services, Mapping):
            return []

        issues = []
        for service_name, service in services.items():
            if not isinstance(service, Mapping):
                continue
            for rule in SECURITY_RULES:
                issues.extend(rule(str(service_name), service))
        return issues
