# provisioner/reconciler/source.py
"""
Source configuration strategies.

GitHub sources pick the first strategy, in precedence order, that the
owner's registered capabilities allow. Anonymous transport always applies,
so the table is total.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List

from provisioner.config.registries import OrgCapabilities, OrgRegistry
from provisioner.manifest.schemas import GitHubSource, Source

logger = logging.getLogger(__name__)


# Applies the configuration and returns the platform sourceType it implies
Configure = Callable[[object, str, GitHubSource, OrgCapabilities], str]


@dataclass(frozen=True)
class SourceStrategy:
    name: str
    applies: Callable[[OrgCapabilities], bool]
    configure: Configure


def _build_path(github: GitHubSource) -> str:
    return github.path or "/"


def _configure_integration(platform, application_id: str, github: GitHubSource, caps: OrgCapabilities) -> str:
    platform.save_github_provider(
        application_id=application_id,
        owner=github.owner,
        repository=github.repo,
        branch=github.branch,
        build_path=_build_path(github),
        github_id=caps.github_id,
    )
    return "github"


def _configure_deploy_key(platform, application_id: str, github: GitHubSource, caps: OrgCapabilities) -> str:
    platform.save_git_provider(
        application_id=application_id,
        url=f"git@github.com:{github.owner}/{github.repo}.git",
        branch=github.branch,
        build_path=_build_path(github),
        ssh_key_id=caps.ssh_key_id,
    )
    return "git"


def _configure_anonymous(platform, application_id: str, github: GitHubSource, caps: OrgCapabilities) -> str:
    platform.save_git_provider(
        application_id=application_id,
        url=f"https://github.com/{github.owner}/{github.repo}.git",
        branch=github.branch,
        build_path=_build_path(github),
    )
    return "git"


GITHUB_STRATEGIES: List[SourceStrategy] = [
    SourceStrategy("integration", lambda caps: bool(caps.github_id), _configure_integration),
    SourceStrategy("deploy-key", lambda caps: bool(caps.ssh_key_id), _configure_deploy_key),
    SourceStrategy("anonymous", lambda caps: True, _configure_anonymous),
]


def select_strategy(caps: OrgCapabilities) -> SourceStrategy:
    for strategy in GITHUB_STRATEGIES:
        if strategy.applies(caps):
            return strategy
    raise LookupError("no source strategy applies")  # unreachable: anonymous always applies


def configure_source(platform, application_id: str, source: Source, orgs: OrgRegistry) -> str:
    """Save the provider for `source` and set the application's sourceType."""
    if source.docker is not None:
        platform.save_docker_provider(application_id=application_id, docker_image=source.docker.reference)
        platform.update_application(application_id, sourceType="docker")
        return "docker"

    github = source.github
    caps = orgs.lookup(github.owner)
    strategy = select_strategy(caps)

    logger.info(f"[reconciler] source {github.owner}/{github.repo}@{github.branch} via {strategy.name}")

    source_type = strategy.configure(platform, application_id, github, caps)
    platform.update_application(application_id, sourceType=source_type)
    return strategy.name
