# provisioner/manifest/validator.py
"""Structural validation of provision manifests.

Gate 1 of the admission pipeline. Every violation is collected in a single
pass so the author sees all problems at once; nothing here touches the
network or the remote platform.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError

from provisioner.core.errors import Issue
from provisioner.manifest.schemas import Manifest


@dataclass
class ValidationResult:
    valid: bool
    structural_errors: List[Issue] = field(default_factory=list)
    manifest: Optional[Manifest] = None


def _pointer(loc) -> str:
    """Convert a pydantic error location into a JSON-pointer style path."""
    if not loc:
        return "/"
    return "/" + "/".join(str(part) for part in loc)


def _clean_message(message: str) -> str:
    # pydantic prefixes messages raised from validators
    for prefix in ("Value error, ", "Assertion failed, "):
        if message.startswith(prefix):
            return message[len(prefix):]
    return message


def _dig(data: Any, *keys) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _as_port(value: Any) -> Optional[int]:
    """Port number as the schema would coerce it; None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class SchemaValidator:
    """Validates manifest structure and the cross-field invariants."""

    def __init__(self, domain_suffix: str):
        self.domain_suffix = domain_suffix.lower().strip(".")

    def validate(self, data: Any) -> ValidationResult:
        if not isinstance(data, dict):
            return ValidationResult(
                valid=False,
                structural_errors=[Issue("/", "manifest must be a mapping")],
            )

        issues: List[Issue] = []
        manifest: Optional[Manifest] = None

        try:
            manifest = Manifest.model_validate(data)
        except ValidationError as e:
            for error in e.errors():
                issues.append(Issue(_pointer(error["loc"]), _clean_message(error["msg"])))

        # Cross-field checks run on the raw document so they are reported
        # even when unrelated parts of the manifest are malformed.
        issues.extend(self._check_health_check_port(data))
        issues.extend(self._check_routing_hostnames(data))

        valid = not issues
        return ValidationResult(
            valid=valid,
            structural_errors=issues,
            manifest=manifest if valid else None,
        )

    # -------------------------
    # CROSS-FIELD INVARIANTS
    # -------------------------

    def _check_health_check_port(self, data: dict) -> List[Issue]:
        port = _as_port(_dig(data, "spec", "healthCheck", "port"))
        ports = _dig(data, "spec", "ports")
        if port is None or not isinstance(ports, list):
            return []

        declared = {
            _as_port(entry.get("containerPort"))
            for entry in ports
            if isinstance(entry, dict)
        }
        if port in declared:
            return []

        return [Issue(
            "/spec/healthCheck/port",
            f"health check port {port} is not a declared container port",
        )]

    def _check_routing_hostnames(self, data: dict) -> List[Issue]:
        hostnames = _dig(data, "spec", "routing", "hostnames")
        if not isinstance(hostnames, list):
            return []

        issues = []
        for index, host in enumerate(hostnames):
            if not isinstance(host, str):
                continue
            if not self.is_managed_host(host):
                issues.append(Issue(
                    f"/spec/routing/hostnames/{index}",
                    f"hostname '{host}' is outside the managed domain '{self.domain_suffix}'",
                ))
        return issues

    def is_managed_host(self, host: str) -> bool:
        host = host.lower().rstrip(".")
        return host.endswith("." + self.domain_suffix) and host != "." + self.domain_suffix
