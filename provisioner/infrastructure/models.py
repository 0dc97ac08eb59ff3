#provisioner\infrastructure\models.py
"""SQLAlchemy ORM models for the run ledger."""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, JSON, Index, Text, Boolean

from provisioner.infrastructure.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================
# APPLIED APPLICATIONS
# ============================================

class AppliedApplicationORM(Base):
    """
    One row per application the provisioner last applied successfully.

    The set of names is compared with the current manifests to detect
    applications whose manifest was deleted.
    """

    __tablename__ = "applied_applications"

    app_name = Column(String(63), primary_key=True)
    application_id = Column(String(255), nullable=False)
    subdomain = Column(String(63), nullable=False)
    domain = Column(String(500), nullable=True)
    source_path = Column(String(1000), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<AppliedApplicationORM(app_name={self.app_name}, application_id={self.application_id})>"


# ============================================
# RECONCILIATION RUNS
# ============================================

class ReconciliationRunORM(Base):
    """History of every apply or removal outcome."""

    __tablename__ = "reconciliation_runs"

    run_id = Column(Integer, primary_key=True, autoincrement=True)
    app_name = Column(String(255), nullable=False, index=True)
    operation = Column(String(20), nullable=False, default="apply")  # apply | remove
    mode = Column(String(20), nullable=True)
    success = Column(Boolean, nullable=False)
    application_id = Column(String(255), nullable=True)
    domain = Column(String(500), nullable=True)

    error = Column(Text, nullable=True)
    error_kind = Column(String(50), nullable=True)
    warnings = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    __table_args__ = (
        Index('ix_runs_app_created', 'app_name', 'created_at'),
    )
