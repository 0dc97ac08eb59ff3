# provisioner/policy/gate.py
"""Admission gate - schema, policy and naming checks before any remote call."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from provisioner.core.errors import AdmissionError, Issue
from provisioner.manifest.schemas import Manifest
from provisioner.manifest.sources import SourceVerifier
from provisioner.manifest.validator import SchemaValidator
from provisioner.policy.engine import PolicyEngine

logger = logging.getLogger(__name__)


@dataclass
class AdmissionDecision:
    manifest: Optional[Manifest] = None
    errors: List[Issue] = field(default_factory=list)
    warnings: List[Issue] = field(default_factory=list)

    @property
    def admitted(self) -> bool:
        return self.manifest is not None and not self.errors


class AdmissionGate:
    """
    Combines the schema validator, policy engine and subdomain authority.

    Naming and compose security rules only need the raw document, so they are
    reported even when the manifest is structurally broken. Warn rules and
    source verification need a parsed manifest and run only after the schema
    passes.
    """

    def __init__(
        self,
        validator: SchemaValidator,
        policy: PolicyEngine,
        source_verifier: Optional[SourceVerifier] = None,
    ):
        self._validator = validator
        self._policy = policy
        self._source_verifier = source_verifier

    def review(
        self,
        data: Any,
        compose_descriptor: Optional[Mapping[str, Any]] = None,
    ) -> AdmissionDecision:
        decision = AdmissionDecision()

        result = self._validator.validate(data)
        decision.errors.extend(result.structural_errors)

        if result.manifest is not None:
            policy = self._policy.evaluate(result.manifest, compose_descriptor)
            decision.errors.extend(policy.deny)
            decision.warnings.extend(policy.warn)

            if self._source_verifier is not None and not decision.errors:
                check = self._source_verifier.verify(result.manifest)
                decision.errors.extend(check.errors)
                decision.warnings.extend(check.warnings)
        else:
            metadata = data.get("metadata") if isinstance(data, dict) else None
            name = metadata.get("name") if isinstance(metadata, dict) else None
            if isinstance(name, str) and name:
                decision.errors.extend(self._policy.check_name(name))
            decision.errors.extend(self._policy.check_compose(compose_descriptor))

        if not decision.errors:
            decision.manifest = result.manifest

        return decision

    def admit(
        self,
        data: Any,
        compose_descriptor: Optional[Mapping[str, Any]] = None,
    ) -> Manifest:
        """Return the admitted manifest or raise AdmissionError."""
        decision = self.review(data, compose_descriptor)
        if not decision.admitted:
            raise AdmissionError(decision.errors)

        for warning in decision.warnings:
            logger.warning(f"[admission] {decision.manifest.name}: {warning}")
        return decision.manifest
