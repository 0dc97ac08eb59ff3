# provisioner/run_validate.py
"""Validate manifests against schema, policy and reserved names (no remote calls)."""

import argparse
import logging
import sys
from typing import List, Optional

from provisioner.config.settings import get_settings
from provisioner.container import build_admission_gate
from provisioner.reconciler.batch import ManifestDocument

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="provisioner-validate", description=__doc__)
    parser.add_argument("files", nargs="+", help="Manifest files (apps/<name>.yaml or apps/<name>/provision.yaml)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    gate = build_admission_gate(get_settings())

    failed = 0
    for path in args.files:
        document = ManifestDocument.from_file(path)

        if document.load_error is not None:
            print(f"❌ {path}")
            print(f"   {document.load_error}")
            failed += 1
            continue

        decision = gate.review(document.data, document.compose)

        print(f"{'✅' if decision.admitted else '❌'} {path}")
        for issue in decision.errors:
            print(f"   error   {issue}")
        for issue in decision.warnings:
            print(f"   warning {issue}")

        if not decision.admitted:
            failed += 1

    print()
    print(f"{len(args.files) - failed} valid, {failed} invalid")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
