# provisioner/run_apply.py
"""Apply manifests to the platform, one after another."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from provisioner.config.settings import get_settings
from provisioner.container import build_batch_driver, build_ledger
from provisioner.core.errors import ProvisionerError
from provisioner.manifest.loader import discover_manifests
from provisioner.reconciler.batch import ManifestDocument, current_app_names, present_app_names
from provisioner.reconciler.results import exit_code

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="provisioner-apply", description=__doc__)
    parser.add_argument(
        "files",
        nargs="*",
        help="Manifest files to apply (default: every manifest under --apps-dir)",
    )
    parser.add_argument(
        "--apps-dir",
        type=Path,
        default=Path("apps"),
        help="Directory holding all manifests; used to detect deleted manifests",
    )
    parser.add_argument(
        "--allow-removals",
        action="store_true",
        help="Delete applications whose manifest no longer exists under --apps-dir",
    )
    parser.add_argument("--summary", type=Path, help="Write a JSON summary of all results to this path")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    paths = args.files or discover_manifests(args.apps_dir)
    if not paths:
        logger.error(f"No manifests given and none found under {args.apps_dir}")
        return 1

    try:
        ledger = build_ledger(settings)
        driver = build_batch_driver(settings, ledger=ledger)

        documents = [ManifestDocument.from_file(path) for path in paths]

        if args.apps_dir.is_dir():
            present = current_app_names(documents) | present_app_names(args.apps_dir)
            removals = driver.plan_removals(present)
        else:
            logger.warning(f"{args.apps_dir} is not a directory; skipping removal detection")
            removals = []

        if removals and not args.allow_removals:
            logger.error(
                f"Manifests were deleted for: {', '.join(removals)}. "
                f"Re-run with --allow-removals to delete these applications."
            )
            return 1

        results = driver.apply_documents(documents)
        removal_results = driver.remove_all(removals) if removals else []

    except ProvisionerError as e:
        logger.error(f"Apply aborted: {e}")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    for result in results:
        if result.success:
            logger.info(f"✅ {result.app_name} ({result.mode.value}) {result.domain}")
        else:
            logger.error(f"❌ {result.app_name}: {result.error}")
    for result in removal_results:
        status = "already absent" if result.already_absent else "deleted"
        if result.success:
            logger.info(f"🗑  {result.app_name} {status}")
        else:
            logger.error(f"❌ removing {result.app_name}: {result.error}")

    if args.summary:
        summary = {
            "results": [r.to_dict() for r in results],
            "removals": [r.to_dict() for r in removal_results],
        }
        args.summary.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        logger.info(f"Summary written to {args.summary}")

    return exit_code([*results, *removal_results])


if __name__ == "__main__":
    sys.exit(main())
