# provisioner/autodeploy/github.py
"""
Auto-deploy setup for source repositories.

Installs a repository secret holding the platform API key and a GitHub
Actions workflow that calls the redeploy endpoint on every push. Uses the
`gh` CLI, which must be installed and authenticated on the runner.
"""

import base64
import json
import logging
import subprocess
from typing import Callable, Iterable, Optional

from provisioner.core.errors import AutoDeployError

logger = logging.getLogger(__name__)


WORKFLOW_PATH = ".github/workflows/deploy.yaml"
SECRET_NAME = "DOKPLOY_API_KEY"

WORKFLOW_TEMPLATE = """name: Deploy {app_name}
on:
  push:
    branches: [{branch}]
  workflow_dispatch:

jobs:
  deploy:
    runs-on: ubuntu-latest
    steps:
      - name: Trigger deployment
        run: |
          curl -sf -X POST "{platform_url}/api/application.redeploy" \\
            -H "Content-Type: application/json" \\
            -H "x-api-key: ${{{{ secrets.{secret_name} }}}}" \\
            -d '{{"applicationId": "{application_id}"}}'
          echo "Deployment triggered"
"""


def render_workflow(app_name: str, branch: str, platform_url: str, application_id: str) -> str:
    return WORKFLOW_TEMPLATE.format(
        app_name=app_name,
        branch=branch,
        platform_url=platform_url.rstrip("/"),
        secret_name=SECRET_NAME,
        application_id=application_id,
    )


class AutoDeployProvisioner:
    """Best-effort CI bootstrap, restricted to allow-listed owners."""

    def __init__(
        self,
        allowed_owners: Iterable[str],
        platform_url: str,
        api_key: Optional[str],
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        gh_binary: str = "gh",
    ):
        self.allowed_owners = {owner.lower() for owner in allowed_owners}
        self.platform_url = platform_url
        self.api_key = api_key
        self._run = runner
        self._gh_binary = gh_binary

    def is_allowed(self, owner: str) -> bool:
        return owner.lower() in self.allowed_owners

    def setup(self, app_name: str, owner: str, repo: str, branch: str, application_id: str) -> None:
        """Install secret and workflow; raises AutoDeployError on any failure."""
        if not self.is_allowed(owner):
            raise AutoDeployError(f"owner '{owner}' is not on the auto-deploy allow-list")

        self.ensure_secret(owner, repo)
        self.install_workflow(app_name, owner, repo, branch, application_id)

    # -------------------------
    # SECRET
    # -------------------------

    def ensure_secret(self, owner: str, repo: str) -> None:
        listing = self._gh("secret", "list", "-R", f"{owner}/{repo}", "--json", "name", "--jq", ".[].name")
        if listing.returncode == 0 and SECRET_NAME in listing.stdout.split():
            return

        if not self.api_key:
            raise AutoDeployError(f"{SECRET_NAME} not available for secret setup")

        result = self._gh("secret", "set", SECRET_NAME, "-R", f"{owner}/{repo}", input=self.api_key)
        if result.returncode != 0:
            raise AutoDeployError(f"Could not set {SECRET_NAME} secret: {result.stderr.strip()}")

        logger.info(f"[autodeploy] {SECRET_NAME} secret added to {owner}/{repo}")

    # -------------------------
    # WORKFLOW
    # -------------------------

    def install_workflow(self, app_name: str, owner: str, repo: str, branch: str, application_id: str) -> None:
        content = render_workflow(app_name, branch, self.platform_url, application_id)
        endpoint = f"repos/{owner}/{repo}/contents/{WORKFLOW_PATH}"

        existing_sha = None
        current = self._gh("api", f"{endpoint}?ref={branch}")
        if current.returncode == 0:
            try:
                existing = json.loads(current.stdout)
            except ValueError:
                raise AutoDeployError(f"Unexpected response reading {WORKFLOW_PATH} in {owner}/{repo}")

            existing_sha = existing.get("sha")
            existing_content = base64.b64decode(existing.get("content") or "").decode("utf-8", "replace")
            if existing_content == content:
                logger.info(f"[autodeploy] workflow in {owner}/{repo} already up to date")
                return

        message = "Update auto-deploy workflow" if existing_sha else "Add auto-deploy workflow"
        args = [
            "api", endpoint, "-X", "PUT",
            "-f", f"message={message}",
            "-f", f"content={base64.b64encode(content.encode('utf-8')).decode('ascii')}",
            "-f", f"branch={branch}",
        ]
        if existing_sha:
            args += ["-f", f"sha={existing_sha}"]

        result = self._gh(*args)
        if result.returncode != 0:
            raise AutoDeployError(f"Could not write {WORKFLOW_PATH} in {owner}/{repo}: {result.stderr.strip()}")

        logger.info(f"[autodeploy] workflow written to {owner}/{repo}@{branch}")

    def _gh(self, *args: str, input: Optional[str] = None) -> subprocess.CompletedProcess:
        try:
            return self._run(
                [self._gh_binary, *args],
                input=input,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            raise AutoDeployError(f"'{self._gh_binary}' CLI is not installed")
