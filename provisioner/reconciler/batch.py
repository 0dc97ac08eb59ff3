# provisioner/reconciler/batch.py
"""
Batch driver - applies many manifests strictly one after another.

Sequential on purpose: every manifest resolves the same shared project, and
parallel runs would race on its find-or-create.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Union

from provisioner.core.errors import ManifestLoadError, RemoteCallError
from provisioner.infrastructure.ledger import LedgerError, LedgerRepository
from provisioner.manifest.loader import (
    discover_manifests,
    find_compose_descriptor,
    load_manifest_file,
    subdomain_from_path,
)
from provisioner.manifest.schemas import Manifest
from provisioner.policy.gate import AdmissionGate
from provisioner.reconciler.reconciler import Reconciler
from provisioner.reconciler.removal import RemovalReconciler
from provisioner.reconciler.results import ErrorKind, ReconciliationResult, RemovalResult

logger = logging.getLogger(__name__)


@dataclass
class ManifestDocument:
    """A manifest as read from disk, before admission."""

    source: str
    data: Optional[dict] = None
    compose: Optional[dict] = None
    load_error: Optional[str] = None

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ManifestDocument":
        try:
            data = load_manifest_file(path)
            compose = find_compose_descriptor(path)
        except ManifestLoadError as e:
            return cls(source=str(path), load_error=str(e))
        return cls(source=str(path), data=data, compose=compose)

    @property
    def app_name(self) -> str:
        """metadata.name when readable, otherwise the name implied by the file path."""
        metadata = self.data.get("metadata") if self.data else None
        name = metadata.get("name") if isinstance(metadata, dict) else None
        if isinstance(name, str) and name:
            return name
        return subdomain_from_path(self.source)


class BatchDriver:
    def __init__(
        self,
        gate: AdmissionGate,
        reconciler: Reconciler,
        platform,
        ledger: Optional[LedgerRepository] = None,
        remover: Optional[RemovalReconciler] = None,
    ):
        self._gate = gate
        self._reconciler = reconciler
        self._platform = platform
        self._ledger = ledger
        self._remover = remover

    # ============================================
    # LIVENESS
    # ============================================

    def ensure_platform_reachable(self) -> None:
        """Probe once before a batch; an unreachable API fails the whole run."""
        if not self._platform.health_check():
            raise RemoteCallError("Dokploy API is not reachable; no manifests were applied")
        logger.info("[batch] platform reachable")

    # ============================================
    # APPLY
    # ============================================

    def apply_all(self, manifests: Sequence[Manifest]) -> List[ReconciliationResult]:
        """Reconcile already-admitted manifests in order."""
        self.ensure_platform_reachable()

        results = []
        for index, manifest in enumerate(manifests, start=1):
            logger.info(f"[batch] ({index}/{len(manifests)}) {manifest.name}")
            results.append(self._reconcile(manifest))

        self._log_summary(results)
        return results

    def apply_documents(self, documents: Sequence[ManifestDocument]) -> List[ReconciliationResult]:
        """Admit and reconcile documents in order; rejects become failed results."""
        self.ensure_platform_reachable()

        results = []
        for index, document in enumerate(documents, start=1):
            logger.info(f"[batch] ({index}/{len(documents)}) {document.source}")
            result = self._apply_document(document)
            self._record(result, document.source)
            results.append(result)

        self._log_summary(results)
        return results

    def apply_files(self, paths: Iterable[Union[str, Path]]) -> List[ReconciliationResult]:
        return self.apply_documents([ManifestDocument.from_file(path) for path in paths])

    def _apply_document(self, document: ManifestDocument) -> ReconciliationResult:
        name = document.app_name

        if document.load_error is not None:
            logger.error(f"[batch] {document.source}: {document.load_error}")
            return ReconciliationResult(
                success=False,
                app_name=name,
                subdomain=name,
                error=document.load_error,
                error_kind=ErrorKind.LOAD,
            )

        decision = self._gate.review(document.data, document.compose)
        if not decision.admitted:
            for issue in decision.errors:
                logger.error(f"[batch] {name} rejected: {issue}")
            return ReconciliationResult(
                success=False,
                app_name=name,
                subdomain=name,
                error=f"manifest rejected with {len(decision.errors)} error(s)",
                error_kind=ErrorKind.ADMISSION,
                issues=list(decision.errors),
            )

        for warning in decision.warnings:
            logger.warning(f"[batch] {name}: {warning}")

        result = self._reconcile(decision.manifest)
        result.warnings = [str(w) for w in decision.warnings] + result.warnings
        return result

    def _reconcile(self, manifest: Manifest) -> ReconciliationResult:
        try:
            return self._reconciler.reconcile(manifest)
        except Exception as e:
            logger.error(f"[batch] unexpected error reconciling {manifest.name}: {e}", exc_info=True)
            return ReconciliationResult(
                success=False,
                app_name=manifest.name,
                subdomain=manifest.name,
                error=str(e),
                error_kind=ErrorKind.UNEXPECTED,
            )

    # ============================================
    # REMOVALS
    # ============================================

    def plan_removals(self, current_names: Iterable[str]) -> List[str]:
        """Applications the ledger knows about that no manifest mentions any more."""
        if self._ledger is None:
            return []
        return sorted(self._ledger.known_app_names() - set(current_names))

    def remove_all(self, app_names: Sequence[str]) -> List[RemovalResult]:
        if self._remover is None:
            raise ValueError("BatchDriver was built without a RemovalReconciler")

        results = []
        for app_name in app_names:
            try:
                result = self._remover.remove(app_name)
            except Exception as e:
                logger.error(f"[batch] unexpected error removing {app_name}: {e}", exc_info=True)
                result = RemovalResult(
                    success=False,
                    app_name=app_name,
                    error=str(e),
                    error_kind=ErrorKind.UNEXPECTED,
                )
            self._record(result)
            results.append(result)
        return results

    # ============================================
    # HELPERS
    # ============================================

    def _record(self, result: Union[ReconciliationResult, RemovalResult], source_path: Optional[str] = None) -> None:
        if self._ledger is None:
            return
        try:
            self._ledger.record(result, source_path=source_path)
        except LedgerError as e:
            logger.error(f"[batch] ledger not updated for {result.app_name}: {e}")

    @staticmethod
    def _log_summary(results: Sequence[ReconciliationResult]) -> None:
        succeeded = sum(1 for r in results if r.success)
        failed = len(results) - succeeded
        logger.info(f"[batch] done: {succeeded} succeeded, {failed} failed")


def current_app_names(documents: Sequence[ManifestDocument]) -> Set[str]:
    return {document.app_name for document in documents}


def present_app_names(apps_root: Union[str, Path]) -> Set[str]:
    """Names of every manifest still on disk under the apps directory."""
    return current_app_names([ManifestDocument.from_file(path) for path in discover_manifests(apps_root)])
