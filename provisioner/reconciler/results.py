# provisioner/reconciler/results.py
"""Result records produced for every processed manifest or removal."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from provisioner.core.errors import Issue


class ReconcileMode(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class ErrorKind(str, Enum):
    LOAD = "load"
    ADMISSION = "admission"
    AMBIGUITY = "ambiguity"
    REMOTE = "remote"
    UNEXPECTED = "unexpected"


@dataclass
class ReconciliationResult:
    success: bool
    app_name: str
    subdomain: str

    application_id: Optional[str] = None
    domain: Optional[str] = None
    mode: Optional[ReconcileMode] = None

    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    issues: List[Issue] = field(default_factory=list)

    auto_deploy_configured: Optional[bool] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "appName": self.app_name,
            "subdomain": self.subdomain,
            "applicationId": self.application_id,
            "domain": self.domain,
            "mode": self.mode.value if self.mode else None,
            "error": self.error,
            "errorKind": self.error_kind.value if self.error_kind else None,
            "issues": [{"path": i.path, "message": i.message} for i in self.issues],
            "autoDeployConfigured": self.auto_deploy_configured,
            "warnings": list(self.warnings),
        }


@dataclass
class RemovalResult:
    success: bool
    app_name: str
    application_id: Optional[str] = None
    already_absent: bool = False
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "appName": self.app_name,
            "applicationId": self.application_id,
            "alreadyAbsent": self.already_absent,
            "error": self.error,
            "errorKind": self.error_kind.value if self.error_kind else None,
        }


def exit_code(results: Iterable[Any]) -> int:
    """Non-zero when any result failed."""
    return 0 if all(result.success for result in results) else 1
