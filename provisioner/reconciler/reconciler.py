# provisioner/reconciler/reconciler.py
"""Reconciler - converges the remote platform to an admitted manifest."""

import logging
from typing import Dict, List, Optional

from provisioner.autodeploy.github import AutoDeployProvisioner
from provisioner.config.registries import OrgRegistry, SecretNamespace
from provisioner.core.errors import (
    AmbiguityError,
    AutoDeployError,
    PlatformStateError,
    RemoteCallError,
)
from provisioner.manifest.schemas import Build, Manifest
from provisioner.platform.models import RemoteDomain, RemoteEnvironment
from provisioner.reconciler.quotas import quota_for
from provisioner.reconciler.results import ErrorKind, ReconcileMode, ReconciliationResult
from provisioner.reconciler.source import configure_source

logger = logging.getLogger(__name__)


INITIAL_DEPLOY_TITLE = "Initial deployment via provisioner"


def resolve_environment(platform, project_name: str, description: Optional[str] = None) -> RemoteEnvironment:
    """
    Find the shared project's authoritative environment, creating the
    project (and with it the default environment) if it does not exist.

    Find-then-create is not atomic; two concurrent runs can both create.
    Duplicates are repaired by the project maintenance job.
    """
    project = platform.find_project_by_name(project_name)

    if project is None:
        logger.info(f"[reconciler] creating project '{project_name}'")
        project = platform.create_project(project_name, description)
    else:
        # list responses may omit environment contents
        project = platform.get_project(project.project_id)

    environment = project.default_environment
    if environment is None:
        raise PlatformStateError(f"Project '{project_name}' ({project.project_id}) has no environment")
    return environment


def _to_blob(pairs: Dict[str, str]) -> str:
    return "\n".join(f"{key}={value}" for key, value in pairs.items())


class Reconciler:
    """
    Idempotent convergence of one manifest.

    Steps run in a fixed order, each a blocking remote call. Any remote
    failure stops the remaining steps; completed steps are not rolled back,
    the next run converges them because every step is repeatable.
    """

    def __init__(
        self,
        platform,
        project_name: str,
        domain_suffix: str,
        orgs: OrgRegistry,
        secrets: SecretNamespace,
        auto_deploy: Optional[AutoDeployProvisioner] = None,
        project_description: Optional[str] = None,
    ):
        self._platform = platform
        self.project_name = project_name
        self.domain_suffix = domain_suffix
        self._orgs = orgs
        self._secrets = secrets
        self._auto_deploy = auto_deploy
        self.project_description = project_description

    def reconcile(self, manifest: Manifest) -> ReconciliationResult:
        result = ReconciliationResult(success=False, app_name=manifest.name, subdomain=manifest.name)

        logger.info(f"[reconciler] reconciling {manifest.name}")

        try:
            self._converge(manifest, result)
        except AmbiguityError as e:
            logger.error(f"[reconciler] {manifest.name}: {e}")
            result.error = str(e)
            result.error_kind = ErrorKind.AMBIGUITY
        except RemoteCallError as e:
            logger.error(f"[reconciler] {manifest.name} failed: {e}")
            result.error = str(e)
            result.error_kind = ErrorKind.REMOTE

        return result

    # ============================================
    # PROTOCOL
    # ============================================

    def _converge(self, manifest: Manifest, result: ReconciliationResult) -> None:
        # 1. Shared project
        environment = resolve_environment(self._platform, self.project_name, self.project_description)

        # 2. Target application
        matches = environment.applications_named(manifest.name)
        if len(matches) > 1:
            raise AmbiguityError(manifest.name, [app.application_id for app in matches])

        if matches:
            result.mode = ReconcileMode.UPDATE
            application_id = matches[0].application_id
            logger.info(f"[reconciler] {manifest.name}: updating {application_id}")
        else:
            result.mode = ReconcileMode.CREATE
            application = self._platform.create_application(
                name=manifest.name,
                environment_id=environment.environment_id,
                description=manifest.metadata.description,
            )
            application_id = application.application_id
            logger.info(f"[reconciler] {manifest.name}: created {application_id}")

        result.application_id = application_id

        # 3. Source
        configure_source(self._platform, application_id, manifest.spec.source, self._orgs)

        # 4. Build
        self._configure_build(manifest, application_id)

        # 5. Resources
        quota = quota_for(manifest.spec.resources.size)
        self._platform.update_application(
            application_id,
            cpuLimit=quota.cpu_limit,
            memoryLimit=quota.memory_limit,
        )

        # 6. Environment
        result.warnings.extend(self._apply_environment(manifest, application_id))

        # 7. Domains
        host = self._reconcile_domains(manifest, application_id, result.mode)
        result.domain = f"https://{host}"

        # 8. Deployment
        if result.mode == ReconcileMode.CREATE:
            self._platform.deploy(application_id, title=INITIAL_DEPLOY_TITLE)
            logger.info(f"[reconciler] {manifest.name}: initial deployment triggered")
        else:
            self._platform.redeploy(application_id)
            logger.info(f"[reconciler] {manifest.name}: redeploy triggered")

        result.success = True

        # 9. Auto-deploy (never fails the result)
        self._provision_auto_deploy(manifest, application_id, result)

        logger.info(f"[reconciler] ✅ {manifest.name} converged at {result.domain}")

    # ============================================
    # STEPS
    # ============================================

    def _configure_build(self, manifest: Manifest, application_id: str) -> None:
        if manifest.spec.source.docker is not None:
            return

        build = manifest.spec.build or Build()
        self._platform.save_build_type(
            application_id=application_id,
            build_type=build.type.value,
            dockerfile=build.dockerfile,
            context=build.context,
            stage=build.stage,
        )

    def _apply_environment(self, manifest: Manifest, application_id: str) -> List[str]:
        """Save env vars and build args; unresolved secrets become warnings."""
        warnings = []
        env = manifest.spec.env

        variables = env.variables if env else {}
        for ref in (env.secret_refs if env else []):
            value = self._secrets.resolve(ref.secret)
            if value is None:
                message = f"{self._secrets.key_for(ref.secret)} not found in environment; {ref.name} left unset"
                logger.warning(f"[reconciler] {manifest.name}: {message}")
                warnings.append(message)
                continue
            variables[ref.name] = value

        build_args = manifest.spec.build.args if manifest.spec.build else {}

        self._platform.save_environment(
            application_id=application_id,
            env=_to_blob(variables),
            build_args=_to_blob(build_args),
        )
        return warnings

    def _reconcile_domains(self, manifest: Manifest, application_id: str, mode: ReconcileMode) -> str:
        """Converge the canonical domain plus routing aliases; returns the canonical host."""
        port = manifest.spec.primary_port
        canonical = manifest.derived_host(self.domain_suffix)

        hosts = [canonical]
        if manifest.spec.routing:
            for alias in manifest.spec.routing.hostnames:
                alias = alias.lower().rstrip(".")
                if alias not in hosts:
                    hosts.append(alias)

        existing: Dict[str, RemoteDomain] = {}
        if mode == ReconcileMode.UPDATE:
            for domain in self._platform.list_domains(application_id):
                if domain.host in hosts and domain.host not in existing:
                    existing[domain.host] = domain
                else:
                    # Dropped alias or duplicate host
                    self._platform.delete_domain(domain.domain_id)
                    logger.info(f"[reconciler] domain {domain.host} ({domain.domain_id}) removed")

        for host in hosts:
            self._converge_domain(application_id, host, port, existing.get(host))

        return canonical

    def _converge_domain(self, application_id: str, host: str, port: int, domain: Optional[RemoteDomain]) -> None:
        if domain is None:
            self._platform.create_domain(application_id=application_id, host=host, port=port)
            logger.info(f"[reconciler] domain {host} -> :{port} created")
        elif domain.port != port:
            self._platform.update_domain(domain.domain_id, host=host, port=port)
            logger.info(f"[reconciler] domain {host} port {domain.port} -> {port}")

    def _provision_auto_deploy(self, manifest: Manifest, application_id: str, result: ReconciliationResult) -> None:
        github = manifest.spec.source.github
        if github is None or self._auto_deploy is None:
            return

        if manifest.spec.auto_deploy is False:
            result.auto_deploy_configured = False
            return

        if not self._auto_deploy.is_allowed(github.owner):
            result.auto_deploy_configured = False
            result.warnings.append(f"auto-deploy not configured: '{github.owner}' is not on the allow-list")
            return

        try:
            self._auto_deploy.setup(
                app_name=manifest.name,
                owner=github.owner,
                repo=github.repo,
                branch=github.branch,
                application_id=application_id,
            )
            result.auto_deploy_configured = True
        except AutoDeployError as e:
            logger.warning(f"[reconciler] {manifest.name}: succeeded without auto-deploy: {e}")
            result.auto_deploy_configured = False
            result.warnings.append(f"succeeded without auto-deploy: {e}")
