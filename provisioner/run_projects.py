# provisioner/run_projects.py
"""List platform projects and optionally remove duplicates."""

import argparse
import logging
import sys
from typing import List, Optional

from provisioner.config.settings import get_settings
from provisioner.core.errors import ProvisionerError
from provisioner.maintenance.projects import dedupe_projects, summarize_projects
from provisioner.platform.client import create_platform_client

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="provisioner-projects", description=__doc__)
    parser.add_argument("--dedupe", action="store_true", help="Delete duplicate projects, keeping the fullest one")
    parser.add_argument("--dry-run", action="store_true", help="With --dedupe, only report what would be deleted")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        client = create_platform_client(get_settings())

        print("📋 Projects")
        for summary in summarize_projects(client):
            marker = "  (duplicate)" if summary.duplicate else ""
            print(f"   {summary.project_id}  {summary.name}  apps={summary.application_count}{marker}")
        print()

        if not args.dedupe:
            return 0

        report = dedupe_projects(client, dry_run=args.dry_run)
    except ProvisionerError as e:
        logger.error(f"Projects job failed: {e}")
        return 1

    if args.dry_run:
        print(f"Would delete {len(report.planned)} project(s): {', '.join(report.planned) or '-'}")
    else:
        print(f"Deleted {len(report.deleted)} project(s), {len(report.failed)} failure(s)")

    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
