#tests\conftest.py

"""Pytest configuration and fixtures."""

import copy

import pytest

from provisioner.config.registries import (
    OrgCapabilities,
    OrgRegistry,
    ReservedNameRegistry,
    SecretNamespace,
)
from provisioner.infrastructure.database import create_db_engine, get_session_factory, init_db
from provisioner.infrastructure.ledger import LedgerRepository
from provisioner.manifest.schemas import Manifest
from provisioner.manifest.validator import SchemaValidator
from provisioner.platform.memory import InMemoryPlatform
from provisioner.policy.authority import SubdomainAuthority
from provisioner.policy.engine import PolicyEngine
from provisioner.policy.gate import AdmissionGate
from provisioner.reconciler.reconciler import Reconciler


DOMAIN_SUFFIX = "apps.example.com"
PROJECT_NAME = "provisioner"


BASE_MANIFEST = {
    "apiVersion": "provisioner.quickable.co/v1",
    "kind": "Application",
    "metadata": {
        "name": "demo",
        "description": "Demo application",
        "maintainer": "team@example.com",
    },
    "spec": {
        "source": {
            "type": "docker",
            "docker": {"image": "nginx", "tag": "latest"},
        },
        "resources": {"size": "S"},
        "ports": [{"containerPort": 80}],
    },
}

GITHUB_SOURCE = {
    "type": "github",
    "github": {"owner": "tini-works", "repo": "demo-app", "branch": "release"},
}


# ============================================
# MANIFESTS
# ============================================

@pytest.fixture
def manifest_data():
    """Factory for raw manifest dicts; keyword overrides replace keys of the manifest's spec section."""
    def _build(name="demo", **spec_overrides):
        data = copy.deepcopy(BASE_MANIFEST)
        data["metadata"]["name"] = name
        data["spec"].update(copy.deepcopy(spec_overrides))
        return data
    return _build


@pytest.fixture
def make_manifest(manifest_data):
    """Factory for parsed Manifest objects."""
    def _build(name="demo", **spec_overrides):
        return Manifest.model_validate(manifest_data(name, **spec_overrides))
    return _build


# ============================================
# REGISTRIES
# ============================================

@pytest.fixture
def reserved_registry():
    return ReservedNameRegistry(
        reserved=frozenset({"admin", "api", "www", "dokploy"}),
        blocked_prefixes=("admin-", "internal-"),
    )


@pytest.fixture
def org_registry():
    return OrgRegistry(orgs={
        "tini-works": OrgCapabilities(github_id="gh-1", ssh_key_id="ssh-1"),
        "quickable": OrgCapabilities(ssh_key_id="ssh-2"),
    })


@pytest.fixture
def secrets():
    return SecretNamespace({"SECRET_DB_PASSWORD": "s3cret"})


# ============================================
# ADMISSION
# ============================================

@pytest.fixture
def authority(reserved_registry):
    return SubdomainAuthority(reserved_registry)


@pytest.fixture
def policy(authority):
    return PolicyEngine(authority)


@pytest.fixture
def validator():
    return SchemaValidator(DOMAIN_SUFFIX)


@pytest.fixture
def gate(validator, policy):
    return AdmissionGate(validator, policy)


# ============================================
# PLATFORM / RECONCILER
# ============================================

@pytest.fixture
def platform():
    """Fresh in-memory control plane per test."""
    return InMemoryPlatform()


@pytest.fixture
def reconciler(platform, org_registry, secrets):
    return Reconciler(
        platform=platform,
        project_name=PROJECT_NAME,
        domain_suffix=DOMAIN_SUFFIX,
        orgs=org_registry,
        secrets=secrets,
    )


# ============================================
# LEDGER
# ============================================

@pytest.fixture
def test_engine():
    """In-memory SQLite engine with all ledger tables."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(test_engine):
    return LedgerRepository(get_session_factory(test_engine))
