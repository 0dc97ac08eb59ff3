#provisioner/platform/models.py
"""Typed views of remote control-plane objects."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# ============================================
# DOMAIN
# ============================================

@dataclass
class RemoteDomain:
    """Externally routable hostname attached to an application."""
    domain_id: str
    host: str
    port: Optional[int] = None
    https: bool = True
    certificate_type: str = "letsencrypt"
    application_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteDomain":
        return cls(
            domain_id=data["domainId"],
            host=data["host"],
            port=data.get("port"),
            https=bool(data.get("https", True)),
            certificate_type=data.get("certificateType") or "letsencrypt",
            application_id=data.get("applicationId"),
        )


# ============================================
# APPLICATION
# ============================================

@dataclass
class RemoteApplication:
    """Deployable unit inside the shared environment."""
    application_id: str
    name: str
    app_name: str = ""
    environment_id: Optional[str] = None
    source_type: Optional[str] = None
    cpu_limit: Optional[str] = None
    memory_limit: Optional[str] = None
    env: Optional[str] = None
    application_status: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteApplication":
        return cls(
            application_id=data["applicationId"],
            name=data.get("name", ""),
            app_name=data.get("appName", ""),
            environment_id=data.get("environmentId"),
            source_type=data.get("sourceType"),
            cpu_limit=data.get("cpuLimit"),
            memory_limit=data.get("memoryLimit"),
            env=data.get("env"),
            application_status=data.get("applicationStatus"),
        )


# ============================================
# PROJECT / ENVIRONMENT
# ============================================

@dataclass
class RemoteEnvironment:
    environment_id: str
    name: str = ""
    applications: List[RemoteApplication] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteEnvironment":
        return cls(
            environment_id=data["environmentId"],
            name=data.get("name", ""),
            applications=[RemoteApplication.from_api(app) for app in data.get("applications") or []],
        )

    def applications_named(self, name: str) -> List[RemoteApplication]:
        return [app for app in self.applications if app.name == name]


@dataclass
class RemoteProject:
    """Multi-tenant container; environments[0] is authoritative."""
    project_id: str
    name: str
    description: Optional[str] = None
    environments: List[RemoteEnvironment] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteProject":
        return cls(
            project_id=data["projectId"],
            name=data.get("name", ""),
            description=data.get("description"),
            environments=[RemoteEnvironment.from_api(env) for env in data.get("environments") or []],
        )

    @property
    def default_environment(self) -> Optional[RemoteEnvironment]:
        return self.environments[0] if self.environments else None

    @property
    def application_count(self) -> int:
        env = self.default_environment
        return len(env.applications) if env else 0
