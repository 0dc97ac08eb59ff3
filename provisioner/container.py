#provisioner\container.py

"""Dependency injection container - wires all services together from settings."""

from typing import Optional

from provisioner.autodeploy.github import AutoDeployProvisioner
from provisioner.config.registries import OrgRegistry, ReservedNameRegistry, SecretNamespace
from provisioner.config.settings import ProvisionerSettings
from provisioner.infrastructure.database import create_db_engine, get_session_factory, init_db
from provisioner.infrastructure.ledger import LedgerRepository
from provisioner.manifest.sources import SourceVerifier
from provisioner.manifest.validator import SchemaValidator
from provisioner.platform.client import create_platform_client
from provisioner.policy.authority import SubdomainAuthority
from provisioner.policy.engine import PolicyEngine
from provisioner.policy.gate import AdmissionGate
from provisioner.reconciler.batch import BatchDriver
from provisioner.reconciler.reconciler import Reconciler
from provisioner.reconciler.removal import RemovalReconciler


# ============================================
# ADMISSION
# ============================================

def build_admission_gate(settings: ProvisionerSettings) -> AdmissionGate:
    authority = SubdomainAuthority(ReservedNameRegistry.load(settings.reserved_subdomains_path))

    verifier = None
    if settings.validate_sources:
        verifier = SourceVerifier(github_token=settings.github_token)

    return AdmissionGate(
        validator=SchemaValidator(settings.domain_suffix),
        policy=PolicyEngine(authority),
        source_verifier=verifier,
    )


# ============================================
# LEDGER
# ============================================

def build_ledger(settings: ProvisionerSettings) -> LedgerRepository:
    engine = create_db_engine(settings.database_url, echo=settings.echo_sql)
    init_db(engine)
    return LedgerRepository(get_session_factory(engine))


# ============================================
# RECONCILIATION
# ============================================

def build_reconciler(settings: ProvisionerSettings, platform) -> Reconciler:
    auto_deploy = AutoDeployProvisioner(
        allowed_owners=settings.auto_deploy_owners,
        platform_url=settings.platform_base_url,
        api_key=settings.dokploy_api_key,
    )

    return Reconciler(
        platform=platform,
        project_name=settings.project_name,
        domain_suffix=settings.domain_suffix,
        orgs=OrgRegistry.load(settings.github_orgs_path),
        secrets=SecretNamespace(),
        auto_deploy=auto_deploy,
        project_description=settings.project_description,
    )


def build_batch_driver(
    settings: ProvisionerSettings,
    platform=None,
    ledger: Optional[LedgerRepository] = None,
) -> BatchDriver:
    """Full apply pipeline; a platform client is created from settings unless given."""
    platform = platform or create_platform_client(settings)

    return BatchDriver(
        gate=build_admission_gate(settings),
        reconciler=build_reconciler(settings, platform),
        platform=platform,
        ledger=ledger,
        remover=RemovalReconciler(platform, settings.project_name),
    )
