"""Tests for violation stores and the state tracker."""

from types import MappingProxyType

import pytest

from quota_observer.quota_common import (
    QuotaObserverError,
    RegionInfo,
    SpaceQuota,
    SpaceViolationPolicy,
    TableName,
    ViolationState,
)
from quota_observer.violation_store import (
    ViolationStateTracker,
    namespace_violation_store,
    table_violation_store,
)

T1 = TableName("ns", "t1")
T2 = TableName("ns", "t2")
T3 = TableName("default", "t3")

SIZES = MappingProxyType({
    RegionInfo("a", T1): 30,
    RegionInfo("b", T1): 40,
    RegionInfo("c", T2): 50,
    RegionInfo("d", T3): 1000,
})


class TestViolationStateTracker:
    def test_unknown_subject_reads_observance(self):
        tracker = ViolationStateTracker()

        assert tracker.get(T1) == ViolationState.IN_OBSERVANCE
        assert len(tracker) == 0

    def test_snapshot_is_a_copy(self):
        tracker = ViolationStateTracker()
        tracker.set(T1, ViolationState.IN_VIOLATION)
        copy = tracker.snapshot()
        copy[T1] = ViolationState.IN_OBSERVANCE

        assert tracker.get(T1) == ViolationState.IN_VIOLATION


class TestTableStore:
    @pytest.fixture
    def store(self):
        quotas = {T1: SpaceQuota(60, SpaceViolationPolicy.NO_WRITES)}
        return table_violation_store(SIZES, quotas.get, ViolationStateTracker(), lambda t: 2)

    def test_quota_lookup(self, store):
        assert store.get_space_quota(T1).limit_bytes == 60
        assert store.get_space_quota(T2) is None

    def test_filter_by_subject(self, store):
        assert {r.region_id for r in store.filter_by_subject(T1)} == {"a", "b"}
        assert store.filter_by_subject(TableName("ns", "missing")) == []

    def test_target_state_compares_reported_usage(self, store):
        assert store.get_reported_size(T1) == 70
        assert store.get_target_state(T1, SpaceQuota(60)) == ViolationState.IN_VIOLATION
        assert store.get_target_state(T1, SpaceQuota(70)) == ViolationState.IN_OBSERVANCE

    def test_state_is_shared_with_tracker(self):
        tracker = ViolationStateTracker()
        store = table_violation_store(SIZES, lambda t: None, tracker, lambda t: 2)

        store.set_current_state(T1, ViolationState.IN_VIOLATION)

        assert tracker.get(T1) == ViolationState.IN_VIOLATION
        assert store.get_current_state(T2) == ViolationState.IN_OBSERVANCE

    def test_total_regions(self, store):
        assert store.get_total_regions(T1) == 2


class TestNamespaceStore:
    @pytest.fixture
    def store(self):
        return namespace_violation_store(SIZES, {"ns": SpaceQuota(100)}.get, ViolationStateTracker())

    def test_usage_covers_all_namespace_tables(self, store):
        assert store.get_reported_size("ns") == 120
        assert store.get_target_state("ns", store.get_space_quota("ns")) == ViolationState.IN_VIOLATION

    def test_default_namespace(self, store):
        assert store.get_reported_size("default") == 1000

    def test_cannot_count_regions(self, store):
        with pytest.raises(QuotaObserverError):
            store.get_total_regions("ns")
