# provisioner/platform/client.py
"""Dokploy API client for the provisioner."""

import logging
from typing import Any, Dict, List, Optional

import requests

from provisioner.config.settings import ProvisionerSettings
from provisioner.core.errors import ProvisionerError, RemoteCallError
from provisioner.platform.models import (
    RemoteApplication,
    RemoteDomain,
    RemoteEnvironment,
    RemoteProject,
)

logger = logging.getLogger(__name__)


class PlatformClient:
    """
    Typed façade over the remote control plane.

    Every failed call (HTTP error, timeout, connection problem, unreadable
    body) raises RemoteCallError. Nothing here retries.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: Dokploy URL (e.g., "https://dokploy.example.com")
            api_key: API key sent as x-api-key
            timeout: Request timeout in seconds
            session: Optional requests session (tests inject a stub)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-api-key": api_key,
        })

    # ============================================
    # TRANSPORT
    # ============================================

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}/api/{endpoint}"

        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise RemoteCallError(f"{endpoint} timed out after {self.timeout}s", endpoint=endpoint)
        except requests.exceptions.ConnectionError:
            raise RemoteCallError(f"Cannot connect to Dokploy at {self.base_url}", endpoint=endpoint)
        except requests.exceptions.RequestException as e:
            raise RemoteCallError(f"{endpoint} failed: {e}", endpoint=endpoint)

        if not 200 <= response.status_code < 300:
            raise RemoteCallError(
                f"Dokploy API error: {response.status_code} {response.reason} on {endpoint}\n{response.text}",
                endpoint=endpoint,
                status_code=response.status_code,
            )

        if not response.text:
            return {}

        try:
            return response.json()
        except ValueError:
            raise RemoteCallError(f"{endpoint} returned a non-JSON body", endpoint=endpoint)

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Any:
        return self._request("POST", endpoint, payload=payload)

    def _get(self, endpoint: str, **params) -> Any:
        return self._request("GET", endpoint, params=params)

    # ============================================
    # PROJECTS
    # ============================================

    def list_projects(self) -> List[RemoteProject]:
        return [RemoteProject.from_api(item) for item in self._get("project.all") or []]

    def find_project_by_name(self, name: str) -> Optional[RemoteProject]:
        matches = [project for project in self.list_projects() if project.name == name]
        if len(matches) > 1:
            logger.warning(
                f"[platform] {len(matches)} projects named '{name}', using {matches[0].project_id}; "
                f"run provisioner-projects --dedupe"
            )
        return matches[0] if matches else None

    def get_project(self, project_id: str) -> RemoteProject:
        return RemoteProject.from_api(self._get("project.one", projectId=project_id))

    def create_project(self, name: str, description: Optional[str] = None) -> RemoteProject:
        """Create a project; the platform creates its default environment alongside."""
        data = self._post("project.create", {"name": name, "description": description})
        project = RemoteProject.from_api(data["project"])
        if data.get("environment"):
            project.environments = [RemoteEnvironment.from_api(data["environment"])]
        return project

    def delete_project(self, project_id: str) -> None:
        self._post("project.remove", {"projectId": project_id})

    # ============================================
    # APPLICATIONS
    # ============================================

    def create_application(
        self,
        name: str,
        environment_id: str,
        description: Optional[str] = None,
    ) -> RemoteApplication:
        data = self._post("application.create", {
            "name": name,
            "appName": name,
            "environmentId": environment_id,
            "description": description,
        })
        return RemoteApplication.from_api(data)

    def get_application(self, application_id: str) -> RemoteApplication:
        return RemoteApplication.from_api(self._get("application.one", applicationId=application_id))

    def update_application(self, application_id: str, **fields) -> None:
        self._post("application.update", {"applicationId": application_id, **fields})

    def delete_application(self, application_id: str) -> None:
        self._post("application.delete", {"applicationId": application_id})

    # ============================================
    # SOURCE CONFIGURATION
    # ============================================

    def save_github_provider(
        self,
        application_id: str,
        owner: str,
        repository: str,
        branch: str,
        build_path: str,
        github_id: str,
    ) -> None:
        self._post("application.saveGithubProvider", {
            "applicationId": application_id,
            "owner": owner,
            "repository": repository,
            "branch": branch,
            "buildPath": build_path,
            "githubId": github_id,
            "triggerType": "push",
        })

    def save_git_provider(
        self,
        application_id: str,
        url: str,
        branch: str,
        build_path: str,
        ssh_key_id: Optional[str] = None,
    ) -> None:
        """Custom git provider; without ssh_key_id the clone is anonymous."""
        self._post("application.saveGitProvider", {
            "applicationId": application_id,
            "customGitUrl": url,
            "customGitBranch": branch,
            "customGitBuildPath": build_path,
            "customGitSSHKeyId": ssh_key_id,
        })

    def save_docker_provider(self, application_id: str, docker_image: str) -> None:
        self._post("application.saveDockerProvider", {
            "applicationId": application_id,
            "dockerImage": docker_image,
        })

    # ============================================
    # BUILD / ENVIRONMENT
    # ============================================

    def save_build_type(
        self,
        application_id: str,
        build_type: str,
        dockerfile: str,
        context: str,
        stage: Optional[str] = None,
    ) -> None:
        self._post("application.saveBuildType", {
            "applicationId": application_id,
            "buildType": build_type,
            "dockerfile": dockerfile,
            "dockerContextPath": context,
            "dockerBuildStage": stage or "",
        })

    def save_environment(self, application_id: str, env: str, build_args: str = "") -> None:
        self._post("application.saveEnvironment", {
            "applicationId": application_id,
            "env": env,
            "buildArgs": build_args,
        })

    # ============================================
    # DOMAINS
    # ============================================

    def create_domain(
        self,
        application_id: str,
        host: str,
        port: int,
        https: bool = True,
        certificate_type: str = "letsencrypt",
    ) -> RemoteDomain:
        data = self._post("domain.create", {
            "applicationId": application_id,
            "host": host,
            "port": port,
            "https": https,
            "certificateType": certificate_type,
        })
        return RemoteDomain.from_api(data)

    def list_domains(self, application_id: str) -> List[RemoteDomain]:
        data = self._get("domain.byApplicationId", applicationId=application_id)
        return [RemoteDomain.from_api(item) for item in data or []]

    def update_domain(
        self,
        domain_id: str,
        host: str,
        port: int,
        https: bool = True,
        certificate_type: str = "letsencrypt",
    ) -> None:
        self._post("domain.update", {
            "domainId": domain_id,
            "host": host,
            "port": port,
            "https": https,
            "certificateType": certificate_type,
        })

    def delete_domain(self, domain_id: str) -> None:
        self._post("domain.delete", {"domainId": domain_id})

    # ============================================
    # DEPLOYMENTS
    # ============================================

    def deploy(self, application_id: str, title: str) -> None:
        self._post("application.deploy", {"applicationId": application_id, "title": title})

    def redeploy(self, application_id: str) -> None:
        self._post("application.redeploy", {"applicationId": application_id})

    # ============================================
    # LIVENESS
    # ============================================

    def health_check(self) -> bool:
        """True if the API answers a trivial list call."""
        try:
            self._get("project.all")
            return True
        except RemoteCallError as e:
            logger.error(f"[platform] health check failed: {e}")
            return False


def create_platform_client(settings: ProvisionerSettings) -> PlatformClient:
    """Build a client from settings; the API key is mandatory."""
    if not settings.dokploy_api_key:
        raise ProvisionerError(
            "Dokploy API key is required. Set DOKPLOY_API_KEY environment variable."
        )
    return PlatformClient(
        base_url=settings.platform_base_url,
        api_key=settings.dokploy_api_key,
        timeout=settings.request_timeout_seconds,
    )
