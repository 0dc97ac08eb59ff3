#provisioner\infrastructure\ledger.py

"""Run ledger repository using SQLAlchemy."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from provisioner.core.errors import ProvisionerError
from provisioner.infrastructure.models import AppliedApplicationORM, ReconciliationRunORM, utc_now
from provisioner.reconciler.results import ReconciliationResult, RemovalResult

logger = logging.getLogger(__name__)


class LedgerError(ProvisionerError):
    """Raised when the ledger database cannot be read or written."""


# ============================================
# Domain records
# ============================================

@dataclass
class AppliedApplication:
    app_name: str
    application_id: str
    subdomain: str
    domain: Optional[str] = None
    source_path: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass
class RunRecord:
    app_name: str
    operation: str
    success: bool
    mode: Optional[str] = None
    application_id: Optional[str] = None
    domain: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None


# ============================================
# Mapping Functions
# ============================================

def applied_to_domain(orm: AppliedApplicationORM) -> AppliedApplication:
    return AppliedApplication(
        app_name=orm.app_name,
        application_id=orm.application_id,
        subdomain=orm.subdomain,
        domain=orm.domain,
        source_path=orm.source_path,
        updated_at=orm.updated_at,
    )


def run_to_domain(orm: ReconciliationRunORM) -> RunRecord:
    return RunRecord(
        app_name=orm.app_name,
        operation=orm.operation,
        success=orm.success,
        mode=orm.mode,
        application_id=orm.application_id,
        domain=orm.domain,
        error=orm.error,
        error_kind=orm.error_kind,
        warnings=list(orm.warnings or []),
        created_at=orm.created_at,
    )


def result_to_run(result: Union[ReconciliationResult, RemovalResult]) -> ReconciliationRunORM:
    if isinstance(result, RemovalResult):
        return ReconciliationRunORM(
            app_name=result.app_name,
            operation="remove",
            success=result.success,
            application_id=result.application_id,
            error=result.error,
            error_kind=result.error_kind.value if result.error_kind else None,
            warnings=[],
        )

    return ReconciliationRunORM(
        app_name=result.app_name,
        operation="apply",
        mode=result.mode.value if result.mode else None,
        success=result.success,
        application_id=result.application_id,
        domain=result.domain,
        error=result.error,
        error_kind=result.error_kind.value if result.error_kind else None,
        warnings=list(result.warnings),
    )


# ============================================
# Repository Implementation
# ============================================

class LedgerRepository:
    """Local record of what the provisioner last applied, with run history."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _get_session(self) -> Session:
        return self._session_factory()

    # -------------------------
    # WRITE
    # -------------------------

    def record(self, result: Union[ReconciliationResult, RemovalResult], source_path: Optional[str] = None) -> None:
        """
        Append a run row; on success also update the applied set
        (upsert for an apply, delete for a removal).
        """
        session = self._get_session()
        try:
            session.add(result_to_run(result))

            if result.success and isinstance(result, RemovalResult):
                session.query(AppliedApplicationORM).filter_by(app_name=result.app_name).delete()
            elif result.success:
                row = session.get(AppliedApplicationORM, result.app_name)
                if row is None:
                    row = AppliedApplicationORM(app_name=result.app_name)
                    session.add(row)
                row.application_id = result.application_id
                row.subdomain = result.subdomain
                row.domain = result.domain
                row.source_path = source_path
                row.updated_at = utc_now()

            session.commit()
            logger.debug(f"[ledger] recorded {result.app_name} success={result.success}")
        except SQLAlchemyError as e:
            session.rollback()
            raise LedgerError(f"Could not record {result.app_name}: {e}")
        finally:
            session.close()

    def forget(self, app_name: str) -> bool:
        """Drop an app from the applied set; True if it was there."""
        session = self._get_session()
        try:
            deleted = session.query(AppliedApplicationORM).filter_by(app_name=app_name).delete()
            session.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            session.rollback()
            raise LedgerError(f"Could not forget {app_name}: {e}")
        finally:
            session.close()

    # -------------------------
    # READ
    # -------------------------

    def known_app_names(self) -> Set[str]:
        session = self._get_session()
        try:
            return {name for (name,) in session.query(AppliedApplicationORM.app_name).all()}
        finally:
            session.close()

    def get(self, app_name: str) -> Optional[AppliedApplication]:
        session = self._get_session()
        try:
            orm = session.get(AppliedApplicationORM, app_name)
            return applied_to_domain(orm) if orm else None
        finally:
            session.close()

    def list_applied(self) -> List[AppliedApplication]:
        session = self._get_session()
        try:
            rows = session.query(AppliedApplicationORM).order_by(AppliedApplicationORM.app_name).all()
            return [applied_to_domain(orm) for orm in rows]
        finally:
            session.close()

    def history(self, app_name: str, limit: int = 20) -> List[RunRecord]:
        """Most recent runs first."""
        session = self._get_session()
        try:
            rows = (
                session.query(ReconciliationRunORM)
                .filter(ReconciliationRunORM.app_name == app_name)
                .order_by(ReconciliationRunORM.run_id.desc())
                .limit(limit)
                .all()
            )
            return [run_to_domain(orm) for orm in rows]
        finally:
            session.close()
