# provisioner/manifest/sources.py
"""Optional remote verification that a manifest's source exists."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from provisioner.core.errors import Issue
from provisioner.manifest.schemas import DockerSource, GitHubSource, Manifest

logger = logging.getLogger(__name__)


@dataclass
class SourceCheck:
    errors: List[Issue] = field(default_factory=list)
    warnings: List[Issue] = field(default_factory=list)


class SourceVerifier:
    """Checks GitHub repositories and Docker Hub tags over HTTP."""

    GITHUB_API = "https://api.github.com"
    DOCKER_HUB_API = "https://hub.docker.com/v2"

    def __init__(
        self,
        github_token: Optional[str] = None,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.github_token = github_token
        self.timeout = timeout
        self._session = session or requests.Session()

    def verify(self, manifest: Manifest) -> SourceCheck:
        source = manifest.spec.source
        if source.github is not None:
            return self._verify_github(source.github)
        if source.docker is not None:
            return self._verify_docker(source.docker)
        return SourceCheck()

    def _verify_github(self, github: GitHubSource) -> SourceCheck:
        check = SourceCheck()
        headers = {"Accept": "application/vnd.github+json"}
        if self.github_token:
            headers["Authorization"] = f"token {self.github_token}"

        try:
            response = self._session.get(
                f"{self.GITHUB_API}/repos/{github.owner}/{github.repo}",
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            check.warnings.append(Issue("/spec/source/github", f"Could not verify GitHub repository: {e}"))
            return check

        if response.status_code != 200:
            check.errors.append(Issue(
                "/spec/source/github",
                f"GitHub repository {github.owner}/{github.repo} not found or not accessible",
            ))
        return check

    def _verify_docker(self, docker: DockerSource) -> SourceCheck:
        check = SourceCheck()
        repository = self._docker_hub_repository(docker.image)
        if repository is None:
            logger.debug(f"[sources] {docker.image} is not on Docker Hub, skipping check")
            return check

        try:
            response = self._session.head(
                f"{self.DOCKER_HUB_API}/repositories/{repository}/tags/{docker.tag}",
                timeout=self.timeout,
            )
            if response.ok:
                return check

            repo_response = self._session.head(
                f"{self.DOCKER_HUB_API}/repositories/{repository}",
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            check.warnings.append(Issue("/spec/source/docker", f"Could not verify Docker image: {e}"))
            return check

        if not repo_response.ok:
            reason = "Repository not found on Docker Hub"
        else:
            reason = f"Tag '{docker.tag}' not found"
        check.errors.append(Issue("/spec/source/docker", f"Docker image {docker.reference} not found: {reason}"))
        return check

    @staticmethod
    def _docker_hub_repository(image: str) -> Optional[str]:
        """Docker Hub repository path for an image, None for other registries."""
        if image.startswith("docker.io/"):
            image = image[len("docker.io/"):]
        if "/" not in image:
            return f"library/{image}"

        registry = image.split("/", 1)[0]
        if "." in registry or ":" in registry or registry == "localhost":
            return None
        return image
