"""Violation notifiers: put a table's space quota violation policy into or out of effect."""

import requests

from quota_observer.db import SessionLocal
from quota_observer.models import AppConfig
from quota_observer.models_db import SpaceQuotaEnforcement
from quota_observer.quota_common import NotifierError, SpaceViolationPolicy, TableName
from quota_observer.utils import get_logger

logger = get_logger(__name__)

_CALLBACK_TIMEOUT = 10  # seconds


def get_table_enforcements() -> dict[str, str]:
    """Return {table_name: violation_policy} for every table with a policy in effect."""
    db = SessionLocal()
    try:
        return {r.table_name: r.violation_policy for r in db.query(SpaceQuotaEnforcement).all()}
    finally:
        db.close()


class TableEnforcementNotifier:
    """Records policies in the ``space_quota_enforcement`` table that region servers consult."""

    def transition_table_to_violation(self, table: TableName, policy: SpaceViolationPolicy) -> None:
        db = SessionLocal()
        try:
            row = db.query(SpaceQuotaEnforcement).filter(SpaceQuotaEnforcement.table_name == str(table)).first()
            if row:
                row.violation_policy = policy.value
            else:
                db.add(SpaceQuotaEnforcement(table_name=str(table), violation_policy=policy.value))
            db.commit()
            logger.info("Enabled %s violation policy on %s", policy.value, table)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def transition_table_to_observance(self, table: TableName) -> None:
        db = SessionLocal()
        try:
            db.query(SpaceQuotaEnforcement).filter(SpaceQuotaEnforcement.table_name == str(table)).delete()
            db.commit()
            logger.info("Disabled violation policy on %s", table)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class HttpViolationNotifier:
    """POSTs each transition to an enforcement endpoint (``{url}/api/space-quota-enforcements/{table}``)."""

    def __init__(self, url: str, secret: str | None = None, timeout: float = _CALLBACK_TIMEOUT) -> None:
        self.url = url.rstrip("/")
        self.secret = secret
        self.timeout = timeout

    def _post(self, table: TableName, payload: dict[str, str]) -> None:
        url = f"{self.url}/api/space-quota-enforcements/{table}"
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers["X-API-Key"] = self.secret
        try:
            resp = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotifierError(f"enforcement callback for {table} failed: {e}") from e
        if resp.status_code // 100 != 2:
            raise NotifierError(f"enforcement callback for {table} returned {resp.status_code}: {resp.text}")

    def transition_table_to_violation(self, table: TableName, policy: SpaceViolationPolicy) -> None:
        self._post(table, {"state": "IN_VIOLATION", "violation_policy": policy.value})
        logger.info("Sent %s violation policy for %s to %s", policy.value, table, self.url)

    def transition_table_to_observance(self, table: TableName) -> None:
        self._post(table, {"state": "IN_OBSERVANCE"})
        logger.info("Sent observance for %s to %s", table, self.url)


def make_notifier(config: AppConfig) -> TableEnforcementNotifier | HttpViolationNotifier:
    """HTTP notifier when ENFORCEMENT_CALLBACK_URL is configured, DB notifier otherwise."""
    if config.ENFORCEMENT_CALLBACK_URL:
        return HttpViolationNotifier(config.ENFORCEMENT_CALLBACK_URL, config.ENFORCEMENT_CALLBACK_SECRET)
    return TableEnforcementNotifier()
