"""Celery task: one space quota observer pass per beat firing."""

import threading
import time
from typing import Any

from quota_observer.catalog import DbRegionSizeSource, DbTableCatalog
from quota_observer.celery_app import OBSERVE_TASK_NAME, celery_app, load_worker_config
from quota_observer.models import ChoreSettings
from quota_observer.notifications import make_notifier
from quota_observer.observer import QuotaObserverChore
from quota_observer.quota_store import DbQuotaSource
from quota_observer.state_cache import get_redis_client, publish_violation_states
from quota_observer.utils import get_logger

logger = get_logger(__name__)

# Worker process start; the first pass waits for the configured initial delay
_STARTED_AT = time.monotonic()

_chore: QuotaObserverChore | None = None
_chore_lock = threading.Lock()
_pass_lock = threading.Lock()


def get_chore() -> QuotaObserverChore:
    """The worker's observer; built once and kept (with its violation states) for the process lifetime."""
    global _chore
    with _chore_lock:
        if _chore is None:
            config = load_worker_config()
            _chore = QuotaObserverChore(
                DbQuotaSource(),
                DbTableCatalog(),
                DbRegionSizeSource(),
                make_notifier(config),
                ChoreSettings.from_config(config),
            )
            logger.info(
                "Quota observer created (period=%ss, initial_delay=%ss, report_percent=%s)",
                _chore.settings.period_seconds,
                _chore.settings.initial_delay_seconds,
                _chore.settings.report_percent,
            )
        return _chore


def run_observer_pass(
    chore: QuotaObserverChore,
    started_at: float,
    pass_lock: threading.Lock,
    redis_url: str | None = None,
    now: float | None = None,
) -> dict[str, Any]:
    """Run a pass unless still within the initial delay or another pass is in flight."""
    if now is None:
        now = time.monotonic()
    remaining = chore.settings.initial_delay_seconds - (now - started_at)
    if remaining > 0:
        logger.debug("Quota observer initial delay: %.1fs remaining", remaining)
        return {"ran": False, "reason": "initial_delay"}
    if not pass_lock.acquire(blocking=False):
        logger.info("Previous quota observer pass still running; skipping this one")
        return {"ran": False, "reason": "in_flight"}
    try:
        summary = chore.chore()
    finally:
        pass_lock.release()
    if summary is None:
        return {"ran": True, "ok": False}
    publish_violation_states(
        get_redis_client(redis_url),
        chore.table_violation_states(),
        chore.namespace_violation_states(),
    )
    return {"ran": True, "ok": True, "summary": summary.to_dict()}


@celery_app.task(name=OBSERVE_TASK_NAME, bind=True)
def observe_space_quotas(self: Any) -> dict[str, Any]:
    """Reconcile table and namespace space quota violations against reported region sizes."""
    return run_observer_pass(
        get_chore(),
        _STARTED_AT,
        _pass_lock,
        redis_url=celery_app.conf.broker_url,
    )
