"""Pydantic schemas for provision manifests."""

import re
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


API_VERSION = "provisioner.quickable.co/v1"

# DNS label; length is enforced separately so errors say which rule failed
NAME_PATTERN = r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$"
ENV_KEY_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


class ManifestModel(BaseModel):
    """Base for manifest sections: camelCase aliases, unknown keys rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# ============================================
# ENUMS
# ============================================

class SourceType(str, Enum):
    GITHUB = "github"
    DOCKER = "docker"


class BuildType(str, Enum):
    DOCKERFILE = "dockerfile"
    NIXPACKS = "nixpacks"
    STATIC = "static"


class ResourceSize(str, Enum):
    S = "S"
    M = "M"
    L = "L"


# ============================================
# METADATA
# ============================================

class Metadata(ManifestModel):
    name: str = Field(min_length=3, max_length=63, pattern=NAME_PATTERN)
    description: Optional[str] = None
    maintainer: str = Field(min_length=1)


# ============================================
# SOURCE
# ============================================

class GitHubSource(ManifestModel):
    owner: str = Field(min_length=1, pattern=r"^[A-Za-z0-9][A-Za-z0-9-]*$")
    repo: str = Field(min_length=1, pattern=r"^[A-Za-z0-9._-]+$")
    branch: str = Field(min_length=1)
    path: Optional[str] = None


class DockerSource(ManifestModel):
    image: str = Field(min_length=1)
    tag: str = Field(min_length=1)

    @property
    def reference(self) -> str:
        return f"{self.image}:{self.tag}"


class Source(ManifestModel):
    """Tagged union: exactly one of `github` or `docker`."""

    type: Optional[SourceType] = None
    github: Optional[GitHubSource] = None
    docker: Optional[DockerSource] = None

    @model_validator(mode="after")
    def _exactly_one_block(self) -> "Source":
        present = [
            source_type
            for source_type, block in ((SourceType.GITHUB, self.github), (SourceType.DOCKER, self.docker))
            if block is not None
        ]
        if len(present) != 1:
            raise ValueError("exactly one of 'github' or 'docker' must be set")

        if self.type is None:
            self.type = present[0]
        elif self.type != present[0]:
            raise ValueError(
                f"type '{self.type.value}' does not match the '{present[0].value}' block"
            )
        return self


# ============================================
# BUILD / RUNTIME
# ============================================

class Build(ManifestModel):
    type: BuildType = BuildType.DOCKERFILE
    dockerfile: str = Field(default="Dockerfile", min_length=1)
    context: str = Field(default=".", min_length=1)
    stage: Optional[str] = None
    args: Dict[str, str] = Field(default_factory=dict)


class Resources(ManifestModel):
    size: ResourceSize


class Port(ManifestModel):
    container_port: int = Field(alias="containerPort", ge=1, le=65535)
    protocol: Literal["tcp", "udp"] = "tcp"


class HealthCheck(ManifestModel):
    path: str = Field(pattern=r"^/")
    port: int = Field(ge=1, le=65535)
    interval_seconds: int = Field(default=10, alias="intervalSeconds", ge=1, le=3600)


class Routing(ManifestModel):
    hostnames: List[str] = Field(default_factory=list)


class SecretRef(ManifestModel):
    name: str = Field(pattern=ENV_KEY_PATTERN)
    secret: str = Field(pattern=r"^[A-Za-z0-9_]+$")


class Env(BaseModel):
    """Static variables as extra keys, plus the reserved `secretRefs` list."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    __pydantic_extra__: Dict[str, str]

    secret_refs: List[SecretRef] = Field(default_factory=list, alias="secretRefs")

    @model_validator(mode="after")
    def _check_keys(self) -> "Env":
        invalid = sorted(key for key in self.variables if not re.match(ENV_KEY_PATTERN, key))
        if invalid:
            raise ValueError(f"invalid environment variable name(s): {', '.join(invalid)}")
        return self

    @property
    def variables(self) -> Dict[str, str]:
        return dict(self.model_extra or {})


# ============================================
# MANIFEST
# ============================================

class ApplicationSpec(ManifestModel):
    source: Source
    build: Optional[Build] = None
    resources: Resources
    ports: List[Port] = Field(min_length=1)
    health_check: Optional[HealthCheck] = Field(default=None, alias="healthCheck")
    env: Optional[Env] = None
    routing: Optional[Routing] = None
    auto_deploy: Optional[bool] = Field(default=None, alias="autoDeploy")

    @property
    def primary_port(self) -> int:
        return self.ports[0].container_port


class Manifest(ManifestModel):
    """A validated `kind: Application` manifest."""

    api_version: Literal["provisioner.quickable.co/v1"] = Field(alias="apiVersion")
    kind: Literal["Application"]
    metadata: Metadata
    spec: ApplicationSpec

    @property
    def name(self) -> str:
        return self.metadata.name

    def derived_host(self, domain_suffix: str) -> str:
        """Hostname the platform routes to this application."""
        return f"{self.metadata.name}-p.{domain_suffix}"
