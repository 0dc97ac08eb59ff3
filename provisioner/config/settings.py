# provisioner/config/settings.py

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ProvisionerSettings(BaseSettings):
    """Provisioner configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Remote control plane
    dokploy_api_url: str = "http://localhost:3000"
    dokploy_api_key: str = ""
    request_timeout_seconds: int = 30

    # Shared project
    project_name: str = "provisioner"
    project_description: str = "Applications provisioned from reviewed manifests"
    domain_suffix: str = "apps.example.com"

    # Registries (YAML, maintained outside this repo's code)
    reserved_subdomains_path: str = "config/reserved-subdomains.yaml"
    github_orgs_path: str = "config/github-orgs.yaml"

    # Auto-deploy
    auto_deploy_owners: List[str] = []

    # Run ledger
    database_url: str = "sqlite:///provisioner.db"
    echo_sql: bool = False

    # Source verification
    validate_sources: bool = False
    github_token: Optional[str] = None

    @property
    def platform_base_url(self) -> str:
        return self.dokploy_api_url.rstrip("/")


@lru_cache
def get_settings() -> ProvisionerSettings:
    return ProvisionerSettings()
