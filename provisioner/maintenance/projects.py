# provisioner/maintenance/projects.py
"""
Project maintenance jobs.

Concurrent apply runs can race on find-or-create and leave several projects
with the same name. These jobs list projects and collapse duplicates.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List

from provisioner.core.errors import RemoteCallError
from provisioner.platform.models import RemoteProject

logger = logging.getLogger(__name__)


@dataclass
class ProjectSummary:
    project_id: str
    name: str
    application_count: int
    duplicate: bool = False


@dataclass
class DedupeReport:
    kept: Dict[str, str] = field(default_factory=dict)   # name -> kept project id
    deleted: List[str] = field(default_factory=list)
    planned: List[str] = field(default_factory=list)     # dry run only
    failed: Dict[str, str] = field(default_factory=dict)  # project id -> error

    @property
    def success(self) -> bool:
        return not self.failed


def summarize_projects(client) -> List[ProjectSummary]:
    projects = client.list_projects()

    counts: Dict[str, int] = defaultdict(int)
    for project in projects:
        counts[project.name] += 1

    return [
        ProjectSummary(
            project_id=project.project_id,
            name=project.name,
            application_count=project.application_count,
            duplicate=counts[project.name] > 1,
        )
        for project in projects
    ]


def _keeper(candidates: List[RemoteProject]) -> RemoteProject:
    """Most applications wins; ties go to the lowest id."""
    return sorted(candidates, key=lambda p: (-p.application_count, p.project_id))[0]


def dedupe_projects(client, dry_run: bool = False) -> DedupeReport:
    """
    Keep one project per name and delete the others.

    Deleting a project deletes its applications on the platform side, so the
    keeper is the one holding the most applications.
    """
    groups: Dict[str, List[RemoteProject]] = defaultdict(list)
    for project in client.list_projects():
        groups[project.name].append(project)

    report = DedupeReport()

    for name, candidates in groups.items():
        if len(candidates) < 2:
            continue

        keeper = _keeper(candidates)
        report.kept[name] = keeper.project_id
        logger.info(
            f"[maintenance] '{name}': {len(candidates)} copies, keeping {keeper.project_id} "
            f"({keeper.application_count} apps)"
        )

        for project in candidates:
            if project.project_id == keeper.project_id:
                continue

            if dry_run:
                logger.info(f"[maintenance] would delete {project.project_id} ({project.application_count} apps)")
                report.planned.append(project.project_id)
                continue

            try:
                client.delete_project(project.project_id)
                report.deleted.append(project.project_id)
                logger.info(f"[maintenance] deleted {project.project_id}")
            except RemoteCallError as e:
                logger.error(f"[maintenance] could not delete {project.project_id}: {e}")
                report.failed[project.project_id] = str(e)

    if not report.kept:
        logger.info("[maintenance] no duplicate projects found")

    return report
