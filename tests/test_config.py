#tests\test_config.py

"""Test settings and the YAML-backed registries."""

from pathlib import Path

from provisioner.config.registries import OrgRegistry, SecretNamespace
from provisioner.config.settings import ProvisionerSettings


REPO_ROOT = Path(__file__).resolve().parent.parent


class TestSettings:
    def test_defaults(self):
        """Test defaults without any environment."""
        settings = ProvisionerSettings(_env_file=None)

        assert settings.project_name == "provisioner"
        assert settings.validate_sources is False
        assert settings.auto_deploy_owners == []

    def test_environment_overrides(self, monkeypatch):
        """Test values are read from environment variables, case-insensitively."""
        monkeypatch.setenv("DOKPLOY_API_URL", "https://dokploy.example.com/")
        monkeypatch.setenv("domain_suffix", "apps.test")
        monkeypatch.setenv("AUTO_DEPLOY_OWNERS", '["tini-works"]')

        settings = ProvisionerSettings(_env_file=None)

        assert settings.platform_base_url == "https://dokploy.example.com"
        assert settings.domain_suffix == "apps.test"
        assert settings.auto_deploy_owners == ["tini-works"]


class TestOrgRegistry:
    def test_shipped_registry(self):
        """Test the repository's org registry loads capabilities."""
        registry = OrgRegistry.load(REPO_ROOT / "config" / "github-orgs.yaml")

        caps = registry.lookup("TINI-WORKS")
        assert caps.github_id is not None
        assert caps.ssh_key_id is not None
        assert registry.lookup("quickable").github_id is None

    def test_unknown_owner(self, tmp_path):
        """Test unknown owners and missing files yield empty capabilities."""
        registry = OrgRegistry.load(tmp_path / "absent.yaml")

        caps = registry.lookup("anyone")
        assert caps.github_id is None and caps.ssh_key_id is None


class TestSecretNamespace:
    def test_resolve(self):
        """Test secrets resolve from SECRET_-prefixed variables."""
        secrets = SecretNamespace({"SECRET_TOKEN": "abc", "SECRET_EMPTY": ""})

        assert secrets.resolve("TOKEN") == "abc"
        assert secrets.resolve("EMPTY") is None
        assert secrets.resolve("MISSING") is None
        assert secrets.key_for("TOKEN") == "SECRET_TOKEN"
