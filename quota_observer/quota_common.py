"""Shared types for space quotas: table names, regions, policies and violation states."""

from dataclasses import dataclass
from enum import Enum

DEFAULT_NAMESPACE = "default"
_NAMESPACE_DELIM = ":"


class QuotaObserverError(Exception):
    """Base error for the space quota observer."""


class InvalidQuotaConfigurationError(QuotaObserverError, ValueError):
    """A quota definition cannot be acted on (e.g. it has no violation policy)."""


class NotifierError(QuotaObserverError):
    """A violation policy could not be applied to or lifted from a table."""


class SubjectKind(str, Enum):
    """What a space quota is defined on."""

    TABLE = "table"
    NAMESPACE = "namespace"


class SpaceViolationPolicy(str, Enum):
    """Action enacted on a table while its quota is violated."""

    DISABLE = "DISABLE"
    NO_WRITES_COMPACTIONS = "NO_WRITES_COMPACTIONS"
    NO_WRITES = "NO_WRITES"
    NO_INSERTS = "NO_INSERTS"


class ViolationState(str, Enum):
    """Enforcement state of a table or namespace relative to its quota."""

    IN_OBSERVANCE = "IN_OBSERVANCE"
    IN_VIOLATION = "IN_VIOLATION"


@dataclass(frozen=True, order=True)
class TableName:
    """Fully qualified table name, ``namespace:qualifier``."""

    namespace: str
    qualifier: str

    @classmethod
    def value_of(cls, name: str) -> "TableName":
        """Parse ``ns:table`` or ``table`` (default namespace)."""
        if not name:
            raise ValueError("table name must not be empty")
        namespace, sep, qualifier = name.partition(_NAMESPACE_DELIM)
        if not sep:
            return cls(DEFAULT_NAMESPACE, namespace)
        if not namespace or not qualifier:
            raise ValueError(f"invalid table name: {name!r}")
        return cls(namespace, qualifier)

    def __str__(self) -> str:
        return f"{self.namespace}{_NAMESPACE_DELIM}{self.qualifier}"


@dataclass(frozen=True)
class RegionInfo:
    """A region (horizontal slice) of a table; the unit sizes are reported for."""

    region_id: str
    table: TableName


@dataclass(frozen=True)
class SpaceQuota:
    """Byte limit and the policy to enact when it is exceeded."""

    limit_bytes: int
    violation_policy: SpaceViolationPolicy | None = None

    def has_violation_policy(self) -> bool:
        return self.violation_policy is not None


@dataclass(frozen=True)
class QuotaSettings:
    """One defined space quota as listed by the quota catalog."""

    kind: SubjectKind
    subject: str
    quota: SpaceQuota

    @property
    def table_name(self) -> TableName | None:
        return TableName.value_of(self.subject) if self.kind == SubjectKind.TABLE else None

    @property
    def namespace(self) -> str | None:
        return self.subject if self.kind == SubjectKind.NAMESPACE else None
