"""Celery app for the quota observer worker and its beat schedule."""

import json
import os

from celery import Celery
from celery.schedules import schedule
from pydantic import ValidationError

from quota_observer.models import AppConfig, ChoreSettings
from quota_observer.utils import get_logger

logger = get_logger(__name__)

OBSERVER_QUEUE = "quota_observer"
OBSERVE_TASK_NAME = "quota_observer.tasks.quota_observer_tasks.observe_space_quotas"


def load_worker_config() -> AppConfig:
    """Config for the worker/beat: CONFIG_PATH (default config.json) if present, env overrides for Celery URLs."""
    data: dict = {}
    config_path = os.environ.get("CONFIG_PATH", "config.json")
    if config_path and os.path.isfile(config_path):
        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not load worker config from %s: %s", config_path, e)
            data = {}
    for key in ("CELERY_BROKER_URL", "CELERY_RESULT_BACKEND"):
        if os.environ.get(key):
            data[key] = os.environ[key]
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        logger.warning("Invalid worker config in %s, using defaults: %s", config_path, e)
        return AppConfig()


def make_celery(config: AppConfig | None = None) -> Celery:
    """Configure the global celery_app. Returns the same celery_app."""
    if config is None:
        config = load_worker_config()
    broker_url = config.CELERY_BROKER_URL or "redis://localhost:6379/0"
    settings = ChoreSettings.from_config(config)
    celery_app.conf.update(
        broker_url=broker_url,
        result_backend=config.CELERY_RESULT_BACKEND or broker_url,
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        # Violation states live in worker memory: one process, one pass at a time
        worker_concurrency=1,
        worker_prefetch_multiplier=1,
        task_routes={OBSERVE_TASK_NAME: {"queue": OBSERVER_QUEUE}},
    )
    celery_app.conf.beat_schedule = {
        "observe-space-quotas-periodic": {
            "task": OBSERVE_TASK_NAME,
            "schedule": schedule(run_every=settings.period_seconds),
            # Drop firings that could not start within one period instead of piling them up
            "options": {"queue": OBSERVER_QUEUE, "expires": settings.period_seconds},
        },
    }
    return celery_app


# Global instance; make_celery(config) updates its config.
#
# The worker must import task modules so @celery_app.task decorators run.
celery_app = Celery(
    "quota_observer",
    include=[
        "quota_observer.tasks.quota_observer_tasks",
    ],
)
make_celery()  # set defaults
