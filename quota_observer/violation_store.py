"""Violation stores: quota, current and target state per subject (table or namespace).

One store class serves both subject kinds; it is parameterized by the subject key
type and by how a region maps to its subject. Stores are rebuilt every pass from
a single region size snapshot, while the current states they read and write live
in a ViolationStateTracker owned by the observer for the life of the process.
"""

from collections.abc import Callable, Hashable, Mapping
from typing import Generic, TypeVar

from quota_observer.quota_common import (
    QuotaObserverError,
    RegionInfo,
    SpaceQuota,
    SubjectKind,
    TableName,
    ViolationState,
)

K = TypeVar("K", bound=Hashable)


class ViolationStateTracker(Generic[K]):
    """Last enforced state per subject. Subjects never set read as IN_OBSERVANCE."""

    def __init__(self) -> None:
        self._states: dict[K, ViolationState] = {}

    def get(self, subject: K) -> ViolationState:
        return self._states.get(subject, ViolationState.IN_OBSERVANCE)

    def set(self, subject: K, state: ViolationState) -> None:
        self._states[subject] = state

    def snapshot(self) -> dict[K, ViolationState]:
        """Point-in-time copy."""
        return dict(self._states)

    def __len__(self) -> int:
        return len(self._states)


class QuotaViolationStore(Generic[K]):
    """Quota/state view of one subject kind over one region size snapshot."""

    def __init__(
        self,
        kind: SubjectKind,
        region_sizes: Mapping[RegionInfo, int],
        subject_of_region: Callable[[RegionInfo], K],
        quota_lookup: Callable[[K], SpaceQuota | None],
        states: ViolationStateTracker[K],
        region_counter: Callable[[K], int] | None = None,
    ) -> None:
        self.kind = kind
        self.region_sizes = region_sizes
        self._quota_lookup = quota_lookup
        self._states = states
        self._region_counter = region_counter
        self._regions_by_subject: dict[K, list[RegionInfo]] = {}
        for region in region_sizes:
            self._regions_by_subject.setdefault(subject_of_region(region), []).append(region)

    def get_space_quota(self, subject: K) -> SpaceQuota | None:
        """Quota currently defined on the subject, None if it was removed."""
        return self._quota_lookup(subject)

    def get_current_state(self, subject: K) -> ViolationState:
        return self._states.get(subject)

    def set_current_state(self, subject: K, state: ViolationState) -> None:
        self._states.set(subject, state)

    def filter_by_subject(self, subject: K) -> list[RegionInfo]:
        """Regions of the subject present in the snapshot, i.e. those that reported."""
        return list(self._regions_by_subject.get(subject, ()))

    def get_reported_size(self, subject: K) -> int:
        return sum(self.region_sizes[region] for region in self._regions_by_subject.get(subject, ()))

    def get_target_state(self, subject: K, quota: SpaceQuota) -> ViolationState:
        """IN_VIOLATION iff the reported usage of the subject is above the quota limit."""
        if self.get_reported_size(subject) > quota.limit_bytes:
            return ViolationState.IN_VIOLATION
        return ViolationState.IN_OBSERVANCE

    def get_total_regions(self, subject: K) -> int:
        """Current region count of the subject, looked up fresh (regions split and merge)."""
        if self._region_counter is None:
            raise QuotaObserverError(f"{self.kind.value} violation store cannot count regions")
        return self._region_counter(subject)


def _table_of(region: RegionInfo) -> TableName:
    return region.table


def _namespace_of(region: RegionInfo) -> str:
    return region.table.namespace


def table_violation_store(
    region_sizes: Mapping[RegionInfo, int],
    quota_lookup: Callable[[TableName], SpaceQuota | None],
    states: ViolationStateTracker[TableName],
    region_counter: Callable[[TableName], int],
) -> QuotaViolationStore[TableName]:
    return QuotaViolationStore(
        SubjectKind.TABLE,
        region_sizes,
        _table_of,
        quota_lookup,
        states,
        region_counter=region_counter,
    )


def namespace_violation_store(
    region_sizes: Mapping[RegionInfo, int],
    quota_lookup: Callable[[str], SpaceQuota | None],
    states: ViolationStateTracker[str],
) -> QuotaViolationStore[str]:
    return QuotaViolationStore(SubjectKind.NAMESPACE, region_sizes, _namespace_of, quota_lookup, states)
