"""Tests for the SQLAlchemy-backed quota catalog, table catalog and region size reports."""

import pytest

from quota_observer.catalog import (
    DbRegionSizeSource,
    DbTableCatalog,
    add_table_region,
    count_table_regions,
    list_tables_in_namespace,
    record_region_size,
    remove_table_region,
    snapshot_region_sizes,
)
from quota_observer.db import SessionLocal
from quota_observer.models_db import SpaceQuotaSetting
from quota_observer.quota_common import (
    RegionInfo,
    SpaceQuota,
    SpaceViolationPolicy,
    SubjectKind,
    TableName,
)
from quota_observer.quota_store import (
    DbQuotaSource,
    delete_space_quota,
    get_namespace_space_quota,
    get_table_space_quota,
    list_space_quotas,
    set_space_quota,
)

pytestmark = pytest.mark.usefixtures("db")


class TestQuotaStore:
    def test_set_and_get(self):
        set_space_quota(SubjectKind.TABLE, "ns:t1", 100, SpaceViolationPolicy.NO_WRITES)
        set_space_quota(SubjectKind.NAMESPACE, "ns", 500, SpaceViolationPolicy.DISABLE)

        assert get_table_space_quota(TableName("ns", "t1")) == SpaceQuota(100, SpaceViolationPolicy.NO_WRITES)
        assert get_namespace_space_quota("ns") == SpaceQuota(500, SpaceViolationPolicy.DISABLE)
        assert get_table_space_quota(TableName("ns", "t2")) is None

    def test_table_subject_is_qualified(self):
        set_space_quota(SubjectKind.TABLE, "t1", 100, None)

        assert get_table_space_quota(TableName("default", "t1")) == SpaceQuota(100, None)
        assert [q.subject for q in list_space_quotas()] == ["default:t1"]

    def test_upsert_replaces_limit(self):
        set_space_quota(SubjectKind.TABLE, "ns:t1", 100, SpaceViolationPolicy.NO_WRITES)
        set_space_quota(SubjectKind.TABLE, "ns:t1", 200, SpaceViolationPolicy.NO_INSERTS)

        quotas = list_space_quotas()
        assert len(quotas) == 1
        assert quotas[0].quota == SpaceQuota(200, SpaceViolationPolicy.NO_INSERTS)
        assert quotas[0].table_name == TableName("ns", "t1")
        assert quotas[0].namespace is None

    def test_delete(self):
        set_space_quota(SubjectKind.NAMESPACE, "ns", 500, SpaceViolationPolicy.DISABLE)
        delete_space_quota(SubjectKind.NAMESPACE, "ns")
        delete_space_quota(SubjectKind.NAMESPACE, "ns")

        assert list_space_quotas() == []

    def test_unknown_policy_reads_as_missing(self):
        db = SessionLocal()
        try:
            db.add(SpaceQuotaSetting(kind="table", subject="ns:t1", limit_bytes=1, violation_policy="SHRUG"))
            db.add(SpaceQuotaSetting(kind="cluster", subject="all", limit_bytes=1, violation_policy=None))
            db.commit()
        finally:
            db.close()

        quotas = DbQuotaSource().list_space_quotas()

        assert len(quotas) == 1
        assert quotas[0].quota.violation_policy is None


class TestCatalog:
    def test_namespace_membership_and_region_counts(self):
        t1 = TableName("ns", "t1")
        add_table_region("r1", t1)
        add_table_region("r2", t1)
        add_table_region("r3", TableName("ns", "t2"))
        add_table_region("r4", TableName("other", "t3"))

        assert sorted(map(str, list_tables_in_namespace("ns"))) == ["ns:t1", "ns:t2"]
        assert count_table_regions(t1) == 2
        assert DbTableCatalog().count_table_regions(TableName("ns", "missing")) == 0

    def test_remove_region_drops_its_report(self):
        t1 = TableName("ns", "t1")
        add_table_region("r1", t1)
        record_region_size("r1", 10)
        remove_table_region("r1")

        assert count_table_regions(t1) == 0
        assert snapshot_region_sizes() == {}

    def test_snapshot(self):
        t1 = TableName("ns", "t1")
        for region_id in ("r1", "r2", "r3"):
            add_table_region(region_id, t1)
        record_region_size("r1", 10)
        record_region_size("r1", 15)
        record_region_size("r2", 5)

        snapshot = DbRegionSizeSource().snapshot_region_sizes()
        record_region_size("r3", 99)

        assert dict(snapshot) == {RegionInfo("r1", t1): 15, RegionInfo("r2", t1): 5}
        with pytest.raises(TypeError):
            snapshot[RegionInfo("r9", t1)] = 1

    def test_report_follows_region_moved_to_another_table(self):
        a, b = TableName("ns", "a"), TableName("ns", "b")
        add_table_region("r1", a)
        record_region_size("r1", 100)

        add_table_region("r1", b)

        assert count_table_regions(a) == 0
        assert count_table_regions(b) == 1
        assert dict(snapshot_region_sizes()) == {RegionInfo("r1", b): 100}

    def test_reports_for_uncataloged_regions_are_left_out(self):
        t1 = TableName("ns", "t1")
        add_table_region("r1", t1)
        record_region_size("r1", 10)
        record_region_size("orphan", 50)

        assert dict(snapshot_region_sizes()) == {RegionInfo("r1", t1): 10}
