"""Pydantic models for config and API responses."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class TimeUnit(str, Enum):
    """Unit of the observer period and initial delay."""

    NANOSECONDS = "NANOSECONDS"
    MICROSECONDS = "MICROSECONDS"
    MILLISECONDS = "MILLISECONDS"
    SECONDS = "SECONDS"
    MINUTES = "MINUTES"
    HOURS = "HOURS"
    DAYS = "DAYS"

    def to_seconds(self, value: float) -> float:
        return value * _SECONDS_PER_UNIT[self]


_SECONDS_PER_UNIT = {
    TimeUnit.NANOSECONDS: 1e-9,
    TimeUnit.MICROSECONDS: 1e-6,
    TimeUnit.MILLISECONDS: 1e-3,
    TimeUnit.SECONDS: 1.0,
    TimeUnit.MINUTES: 60.0,
    TimeUnit.HOURS: 3600.0,
    TimeUnit.DAYS: 86400.0,
}

DEFAULT_CHORE_PERIOD = 1000 * 60 * 5  # 5 minutes in millis
DEFAULT_CHORE_DELAY = 1000 * 60  # 1 minute in millis
DEFAULT_CHORE_TIMEUNIT = TimeUnit.MILLISECONDS
DEFAULT_REPORT_PERCENT = 0.95


# --- Config ---


class AppConfig(BaseModel):
    """Service config (Flask API and Celery worker share it)."""

    API_KEY: str | None = None
    PORT: int | None = None
    CELERY_BROKER_URL: str | None = None  # e.g. redis://localhost:6379/0; also where violation states are published
    CELERY_RESULT_BACKEND: str | None = None  # Optional
    ENFORCEMENT_CALLBACK_URL: str | None = None  # If set, transitions are POSTed here instead of written to the DB
    ENFORCEMENT_CALLBACK_SECRET: str | None = None  # X-API-Key for ENFORCEMENT_CALLBACK_URL
    QUOTA_OBSERVER_CHORE_PERIOD: int = Field(default=DEFAULT_CHORE_PERIOD, gt=0)
    QUOTA_OBSERVER_CHORE_DELAY: int = Field(default=DEFAULT_CHORE_DELAY, ge=0)
    QUOTA_OBSERVER_CHORE_TIMEUNIT: TimeUnit = DEFAULT_CHORE_TIMEUNIT
    # Fraction of a table's regions that must have reported before the table is judged
    QUOTA_OBSERVER_REPORT_PERCENT: float = Field(default=DEFAULT_REPORT_PERCENT, ge=0.0, le=1.0)


@dataclass(frozen=True)
class ChoreSettings:
    """Schedule and report-completeness settings of the quota observer."""

    period: int = DEFAULT_CHORE_PERIOD
    initial_delay: int = DEFAULT_CHORE_DELAY
    time_unit: TimeUnit = DEFAULT_CHORE_TIMEUNIT
    report_percent: float = DEFAULT_REPORT_PERCENT

    @classmethod
    def from_config(cls, config: AppConfig) -> "ChoreSettings":
        return cls(
            period=config.QUOTA_OBSERVER_CHORE_PERIOD,
            initial_delay=config.QUOTA_OBSERVER_CHORE_DELAY,
            time_unit=config.QUOTA_OBSERVER_CHORE_TIMEUNIT,
            report_percent=config.QUOTA_OBSERVER_REPORT_PERCENT,
        )

    @property
    def period_seconds(self) -> float:
        return self.time_unit.to_seconds(self.period)

    @property
    def initial_delay_seconds(self) -> float:
        return self.time_unit.to_seconds(self.initial_delay)


# --- API: Error ---


class BasicError(BaseModel):
    """Error response body."""

    msg: str
    detail: str | None = None


# --- API: Space quotas ---


class SpaceQuotaResponse(BaseModel):
    """One defined space quota."""

    kind: str
    subject: str
    limit_bytes: int
    violation_policy: str | None = None


class ViolationStatesResponse(BaseModel):
    """Violation states published by the observer after its last successful pass."""

    published_at: float
    tables: dict[str, str]
    namespaces: dict[str, str]
