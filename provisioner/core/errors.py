# provisioner/core/errors.py

from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class Issue:
    """A single problem found in a manifest, located by a field path."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


# -----------------------------
# Base Errors
# -----------------------------

class ProvisionerError(Exception):
    """Base class for all provisioner errors."""
    pass


# -----------------------------
# Manifest / Admission Errors
# -----------------------------

class ManifestLoadError(ProvisionerError):
    """Manifest file missing, unreadable, or not a YAML mapping."""
    pass


class AdmissionError(ProvisionerError):
    """Manifest rejected by schema, policy, or naming rules."""

    def __init__(self, issues: Sequence[Issue]):
        self.issues: List[Issue] = list(issues)
        summary = "; ".join(str(issue) for issue in self.issues) or "manifest not admitted"
        super().__init__(summary)


# -----------------------------
# Reconciliation Errors
# -----------------------------

class AmbiguityError(ProvisionerError):
    """More than one remote application carries the same name."""

    def __init__(self, name: str, application_ids: Sequence[str]):
        self.name = name
        self.application_ids = list(application_ids)
        super().__init__(
            f"Found {len(self.application_ids)} applications named '{name}' "
            f"({', '.join(self.application_ids)}); remove the extras manually"
        )


class RemoteCallError(ProvisionerError):
    """A call to the remote control plane failed."""

    def __init__(self, message: str, endpoint: Optional[str] = None, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message)


class PlatformStateError(RemoteCallError):
    """Remote state is structurally unusable (e.g. project without environment)."""
    pass


class AutoDeployError(ProvisionerError):
    """Auto-deploy provisioning in a source repository failed."""
    pass
