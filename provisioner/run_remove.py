# provisioner/run_remove.py
"""Remove applications for deleted manifests."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from provisioner.config.settings import get_settings
from provisioner.container import build_batch_driver, build_ledger
from provisioner.core.errors import ProvisionerError
from provisioner.reconciler.batch import ManifestDocument
from provisioner.reconciler.results import exit_code

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def app_name_for(target: str) -> str:
    """
    A target is either an application name or the path of a manifest.

    Deleted manifests no longer exist on disk, so their name comes from the
    path layout.
    """
    if target.endswith((".yaml", ".yml")):
        path = Path(target)
        if path.is_file():
            return ManifestDocument.from_file(path).app_name
        return ManifestDocument(source=target).app_name
    return target


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="provisioner-remove", description=__doc__)
    parser.add_argument("targets", nargs="+", help="Application names or manifest paths")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    try:
        driver = build_batch_driver(settings, ledger=build_ledger(settings))
        driver.ensure_platform_reachable()
        results = driver.remove_all([app_name_for(target) for target in args.targets])
    except ProvisionerError as e:
        logger.error(f"Removal aborted: {e}")
        return 1

    for result in results:
        if result.success:
            status = "already absent" if result.already_absent else f"deleted ({result.application_id})"
            logger.info(f"✅ {result.app_name} {status}")
        else:
            logger.error(f"❌ {result.app_name}: {result.error}")

    return exit_code(results)


if __name__ == "__main__":
    sys.exit(main())
