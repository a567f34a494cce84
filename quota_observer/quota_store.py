"""Persistence for space quota definitions (the quota catalog).

The observer reads quotas through ``DbQuotaSource``. ``set_space_quota`` and
``delete_space_quota`` are for the admin tooling that defines quotas.
"""

from quota_observer.db import SessionLocal
from quota_observer.models_db import SpaceQuotaSetting
from quota_observer.quota_common import (
    QuotaSettings,
    SpaceQuota,
    SpaceViolationPolicy,
    SubjectKind,
    TableName,
)
from quota_observer.utils import get_logger

logger = get_logger(__name__)


def _row_to_quota(row: SpaceQuotaSetting) -> SpaceQuota:
    policy: SpaceViolationPolicy | None = None
    if row.violation_policy:
        try:
            policy = SpaceViolationPolicy(row.violation_policy)
        except ValueError:
            # Treated like a missing policy: the observer refuses to enact it
            logger.warning(
                "Unknown violation policy %r on %s quota for %s", row.violation_policy, row.kind, row.subject
            )
    return SpaceQuota(limit_bytes=row.limit_bytes, violation_policy=policy)


def list_space_quotas() -> list[QuotaSettings]:
    """Return every defined space quota (tables and namespaces)."""
    db = SessionLocal()
    try:
        rows = db.query(SpaceQuotaSetting).all()
        results: list[QuotaSettings] = []
        for r in rows:
            try:
                kind = SubjectKind(r.kind)
            except ValueError:
                logger.warning("Skipping space quota with unknown kind %r for %s", r.kind, r.subject)
                continue
            results.append(QuotaSettings(kind=kind, subject=r.subject, quota=_row_to_quota(r)))
        return results
    finally:
        db.close()


def _get_space_quota(kind: SubjectKind, subject: str) -> SpaceQuota | None:
    db = SessionLocal()
    try:
        row = db.query(SpaceQuotaSetting).filter(
            SpaceQuotaSetting.kind == kind.value,
            SpaceQuotaSetting.subject == subject,
        ).first()
        return _row_to_quota(row) if row else None
    finally:
        db.close()


def get_table_space_quota(table: TableName) -> SpaceQuota | None:
    """Quota defined on the table, or None (e.g. deleted since discovery)."""
    return _get_space_quota(SubjectKind.TABLE, str(table))


def get_namespace_space_quota(namespace: str) -> SpaceQuota | None:
    """Quota defined on the namespace, or None."""
    return _get_space_quota(SubjectKind.NAMESPACE, namespace)


def set_space_quota(
    kind: SubjectKind,
    subject: str,
    limit_bytes: int,
    violation_policy: SpaceViolationPolicy | None,
) -> None:
    """Upsert a space quota. Table subjects are stored fully qualified (``ns:table``)."""
    if kind == SubjectKind.TABLE:
        subject = str(TableName.value_of(subject))
    db = SessionLocal()
    try:
        row = db.query(SpaceQuotaSetting).filter(
            SpaceQuotaSetting.kind == kind.value,
            SpaceQuotaSetting.subject == subject,
        ).first()
        policy = violation_policy.value if violation_policy is not None else None
        if row:
            row.limit_bytes = limit_bytes
            row.violation_policy = policy
        else:
            db.add(
                SpaceQuotaSetting(
                    kind=kind.value,
                    subject=subject,
                    limit_bytes=limit_bytes,
                    violation_policy=policy,
                )
            )
        db.commit()
        logger.info("Space quota set %s=%s limit_bytes=%s policy=%s", kind.value, subject, limit_bytes, policy)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def delete_space_quota(kind: SubjectKind, subject: str) -> None:
    """Remove a space quota (no-op if absent)."""
    if kind == SubjectKind.TABLE:
        subject = str(TableName.value_of(subject))
    db = SessionLocal()
    try:
        db.query(SpaceQuotaSetting).filter(
            SpaceQuotaSetting.kind == kind.value,
            SpaceQuotaSetting.subject == subject,
        ).delete()
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class DbQuotaSource:
    """Quota catalog reader backed by the ``space_quota`` table."""

    def list_space_quotas(self) -> list[QuotaSettings]:
        return list_space_quotas()

    def get_table_space_quota(self, table: TableName) -> SpaceQuota | None:
        return get_table_space_quota(table)

    def get_namespace_space_quota(self, namespace: str) -> SpaceQuota | None:
        return get_namespace_space_quota(namespace)
