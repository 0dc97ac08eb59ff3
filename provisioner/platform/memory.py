# provisioner/platform/memory.py
"""In-memory stand-in for the remote control plane."""

from copy import deepcopy
from itertools import count
from typing import Any, Dict, List, Optional, Tuple

from provisioner.core.errors import RemoteCallError
from provisioner.platform.models import (
    RemoteApplication,
    RemoteDomain,
    RemoteEnvironment,
    RemoteProject,
)


class InMemoryPlatform:
    """
    Implements the PlatformClient interface against dictionaries.

    Every call is appended to `calls` as (method, kwargs). `fail_on` maps a
    method name to the exception it should raise, to simulate remote errors.
    Returned objects are copies, so callers never mutate stored state.
    """

    def __init__(self):
        self._ids = count(1)
        self._projects: Dict[str, RemoteProject] = {}
        self._project_order: List[str] = []
        self._applications: Dict[str, RemoteApplication] = {}
        self._domains: Dict[str, RemoteDomain] = {}

        self.providers: Dict[str, Dict[str, Any]] = {}
        self.builds: Dict[str, Dict[str, Any]] = {}
        self.environments: Dict[str, Dict[str, str]] = {}
        self.deployments: List[Tuple[str, str, Optional[str]]] = []

        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.fail_on: Dict[str, Exception] = {}
        self.healthy = True

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append((method, kwargs))
        error = self.fail_on.get(method)
        if error is not None:
            raise error

    def _require_application(self, application_id: str) -> RemoteApplication:
        application = self._applications.get(application_id)
        if application is None:
            raise RemoteCallError(f"Application {application_id} not found", status_code=404)
        return application

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]

    # ============================================
    # PROJECTS
    # ============================================

    def _snapshot(self, project_id: str) -> RemoteProject:
        project = deepcopy(self._projects[project_id])
        for environment in project.environments:
            environment.applications = [
                deepcopy(app)
                for app in self._applications.values()
                if app.environment_id == environment.environment_id
            ]
        return project

    def list_projects(self) -> List[RemoteProject]:
        self._record("list_projects")
        return [self._snapshot(project_id) for project_id in self._project_order]

    def find_project_by_name(self, name: str) -> Optional[RemoteProject]:
        self._record("find_project_by_name", name=name)
        for project_id in self._project_order:
            if self._projects[project_id].name == name:
                return self._snapshot(project_id)
        return None

    def get_project(self, project_id: str) -> RemoteProject:
        self._record("get_project", project_id=project_id)
        if project_id not in self._projects:
            raise RemoteCallError(f"Project {project_id} not found", status_code=404)
        return self._snapshot(project_id)

    def create_project(self, name: str, description: Optional[str] = None) -> RemoteProject:
        self._record("create_project", name=name, description=description)
        project = RemoteProject(
            project_id=self._next_id("proj"),
            name=name,
            description=description,
            environments=[RemoteEnvironment(environment_id=self._next_id("env"), name="production")],
        )
        self._projects[project.project_id] = project
        self._project_order.append(project.project_id)
        return self._snapshot(project.project_id)

    def delete_project(self, project_id: str) -> None:
        self._record("delete_project", project_id=project_id)
        project = self._projects.pop(project_id, None)
        if project is None:
            raise RemoteCallError(f"Project {project_id} not found", status_code=404)
        self._project_order.remove(project_id)
        env_ids = {env.environment_id for env in project.environments}
        for application_id in [a.application_id for a in self._applications.values() if a.environment_id in env_ids]:
            self._drop_application(application_id)

    # ============================================
    # APPLICATIONS
    # ============================================

    def create_application(
        self,
        name: str,
        environment_id: str,
        description: Optional[str] = None,
    ) -> RemoteApplication:
        self._record("create_application", name=name, environment_id=environment_id, description=description)
        application = RemoteApplication(
            application_id=self._next_id("app"),
            name=name,
            app_name=name,
            environment_id=environment_id,
        )
        self._applications[application.application_id] = application
        return deepcopy(application)

    def get_application(self, application_id: str) -> RemoteApplication:
        self._record("get_application", application_id=application_id)
        return deepcopy(self._require_application(application_id))

    def update_application(self, application_id: str, **fields) -> None:
        self._record("update_application", application_id=application_id, **fields)
        application = self._require_application(application_id)
        if "sourceType" in fields:
            application.source_type = fields["sourceType"]
        if "cpuLimit" in fields:
            application.cpu_limit = fields["cpuLimit"]
        if "memoryLimit" in fields:
            application.memory_limit = fields["memoryLimit"]

    def delete_application(self, application_id: str) -> None:
        self._record("delete_application", application_id=application_id)
        self._require_application(application_id)
        self._drop_application(application_id)

    def _drop_application(self, application_id: str) -> None:
        # Cascade like the real platform: domains and deploy history go too
        self._applications.pop(application_id, None)
        self._domains = {k: d for k, d in self._domains.items() if d.application_id != application_id}
        self.deployments = [d for d in self.deployments if d[0] != application_id]
        self.providers.pop(application_id, None)
        self.builds.pop(application_id, None)
        self.environments.pop(application_id, None)

    # ============================================
    # SOURCE / BUILD / ENVIRONMENT
    # ============================================

    def save_github_provider(self, application_id, owner, repository, branch, build_path, github_id) -> None:
        self._record("save_github_provider", application_id=application_id, owner=owner, repository=repository,
                     branch=branch, build_path=build_path, github_id=github_id)
        self._require_application(application_id)
        self.providers[application_id] = {
            "kind": "github", "owner": owner, "repository": repository,
            "branch": branch, "build_path": build_path, "github_id": github_id,
        }

    def save_git_provider(self, application_id, url, branch, build_path, ssh_key_id=None) -> None:
        self._record("save_git_provider", application_id=application_id, url=url, branch=branch,
                     build_path=build_path, ssh_key_id=ssh_key_id)
        self._require_application(application_id)
        self.providers[application_id] = {
            "kind": "git", "url": url, "branch": branch,
            "build_path": build_path, "ssh_key_id": ssh_key_id,
        }

    def save_docker_provider(self, application_id: str, docker_image: str) -> None:
        self._record("save_docker_provider", application_id=application_id, docker_image=docker_image)
        self._require_application(application_id)
        self.providers[application_id] = {"kind": "docker", "image": docker_image}

    def save_build_type(self, application_id, build_type, dockerfile, context, stage=None) -> None:
        self._record("save_build_type", application_id=application_id, build_type=build_type,
                     dockerfile=dockerfile, context=context, stage=stage)
        self._require_application(application_id)
        self.builds[application_id] = {
            "build_type": build_type, "dockerfile": dockerfile, "context": context, "stage": stage,
        }

    def save_environment(self, application_id: str, env: str, build_args: str = "") -> None:
        self._record("save_environment", application_id=application_id, env=env, build_args=build_args)
        application = self._require_application(application_id)
        application.env = env
        self.environments[application_id] = {"env": env, "build_args": build_args}

    # ============================================
    # DOMAINS
    # ============================================

    def create_domain(self, application_id, host, port, https=True, certificate_type="letsencrypt") -> RemoteDomain:
        self._record("create_domain", application_id=application_id, host=host, port=port)
        self._require_application(application_id)
        domain = RemoteDomain(
            domain_id=self._next_id("dom"),
            host=host,
            port=port,
            https=https,
            certificate_type=certificate_type,
            application_id=application_id,
        )
        self._domains[domain.domain_id] = domain
        return deepcopy(domain)

    def list_domains(self, application_id: str) -> List[RemoteDomain]:
        self._record("list_domains", application_id=application_id)
        return [deepcopy(d) for d in self._domains.values() if d.application_id == application_id]

    def update_domain(self, domain_id, host, port, https=True, certificate_type="letsencrypt") -> None:
        self._record("update_domain", domain_id=domain_id, host=host, port=port)
        domain = self._domains.get(domain_id)
        if domain is None:
            raise RemoteCallError(f"Domain {domain_id} not found", status_code=404)
        domain.host = host
        domain.port = port
        domain.https = https
        domain.certificate_type = certificate_type

    def delete_domain(self, domain_id: str) -> None:
        self._record("delete_domain", domain_id=domain_id)
        if self._domains.pop(domain_id, None) is None:
            raise RemoteCallError(f"Domain {domain_id} not found", status_code=404)

    # ============================================
    # DEPLOYMENTS / LIVENESS
    # ============================================

    def deploy(self, application_id: str, title: str) -> None:
        self._record("deploy", application_id=application_id, title=title)
        self._require_application(application_id)
        self.deployments.append((application_id, "deploy", title))

    def redeploy(self, application_id: str) -> None:
        self._record("redeploy", application_id=application_id)
        self._require_application(application_id)
        self.deployments.append((application_id, "redeploy", None))

    def health_check(self) -> bool:
        self._record("health_check")
        return self.healthy

    # ============================================
    # TEST HELPERS
    # ============================================

    def domains_for(self, application_id: str) -> List[RemoteDomain]:
        return [deepcopy(d) for d in self._domains.values() if d.application_id == application_id]

    def application(self, application_id: str) -> RemoteApplication:
        return deepcopy(self._require_application(application_id))
