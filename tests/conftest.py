"""Shared fixtures: in-memory database and in-memory cluster collaborators for the observer."""

import os

# Must be set before quota_observer.db creates its engine
os.environ["DATABASE_URL"] = "sqlite://"

from types import MappingProxyType

import pytest

from quota_observer.models import ChoreSettings
from quota_observer.observer import QuotaObserverChore
from quota_observer.quota_common import (
    QuotaSettings,
    RegionInfo,
    SpaceQuota,
    SpaceViolationPolicy,
    SubjectKind,
    TableName,
)

MB = 1024 * 1024


class FakeQuotaSource:
    """Quota catalog held in dicts."""

    def __init__(self):
        self.table_quotas: dict[TableName, SpaceQuota] = {}
        self.namespace_quotas: dict[str, SpaceQuota] = {}
        self.fail = False

    def set_table_quota(self, table, limit_bytes, policy=SpaceViolationPolicy.NO_WRITES):
        self.table_quotas[table] = SpaceQuota(limit_bytes, policy)

    def set_namespace_quota(self, namespace, limit_bytes, policy=SpaceViolationPolicy.NO_WRITES):
        self.namespace_quotas[namespace] = SpaceQuota(limit_bytes, policy)

    def list_space_quotas(self):
        if self.fail:
            raise ConnectionError("quota catalog unavailable")
        quotas = [QuotaSettings(SubjectKind.TABLE, str(t), q) for t, q in self.table_quotas.items()]
        quotas += [QuotaSettings(SubjectKind.NAMESPACE, ns, q) for ns, q in self.namespace_quotas.items()]
        return quotas

    def get_table_space_quota(self, table):
        return self.table_quotas.get(table)

    def get_namespace_space_quota(self, namespace):
        return self.namespace_quotas.get(namespace)


class FakeCatalog:
    """Tables and their region counts."""

    def __init__(self):
        self.region_counts: dict[TableName, int] = {}

    def list_tables_in_namespace(self, namespace):
        return [t for t in self.region_counts if t.namespace == namespace]

    def count_table_regions(self, table):
        return self.region_counts.get(table, 0)


class FakeRegionSizes:
    """Region size reports; snapshot_region_sizes returns a read-only copy."""

    def __init__(self):
        self.sizes: dict[RegionInfo, int] = {}
        self.snapshot_count = 0

    def report(self, table, total_bytes, reported_regions):
        """Replace the table's reports with `reported_regions` regions sharing `total_bytes`."""
        for region in [r for r in self.sizes if r.table == table]:
            del self.sizes[region]
        for i in range(reported_regions):
            self.sizes[RegionInfo(f"{table}-r{i}", table)] = total_bytes // reported_regions

    def snapshot_region_sizes(self):
        self.snapshot_count += 1
        return MappingProxyType(dict(self.sizes))


class RecordingNotifier:
    """Records transitions; can be told to fail for given tables."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.fail_tables: set[TableName] = set()

    def transition_table_to_violation(self, table, policy):
        if table in self.fail_tables:
            raise ConnectionError(f"cannot reach region servers for {table}")
        self.calls.append(("violation", table, policy))

    def transition_table_to_observance(self, table):
        if table in self.fail_tables:
            raise ConnectionError(f"cannot reach region servers for {table}")
        self.calls.append(("observance", table))

    def calls_for(self, table):
        return [c for c in self.calls if c[1] == table]


class FakeCluster:
    """Bundle of fakes plus helpers to declare tables and their usage."""

    def __init__(self):
        self.quotas = FakeQuotaSource()
        self.catalog = FakeCatalog()
        self.region_sizes = FakeRegionSizes()
        self.notifier = RecordingNotifier()

    def add_table(self, name, regions=10, used_bytes=0, reported=None):
        table = TableName.value_of(name)
        self.catalog.region_counts[table] = regions
        self.region_sizes.report(table, used_bytes, regions if reported is None else reported)
        return table

    def use(self, table, used_bytes, reported=None):
        regions = self.catalog.region_counts[table]
        self.region_sizes.report(table, used_bytes, regions if reported is None else reported)

    def make_chore(self, settings=None):
        return QuotaObserverChore(
            self.quotas,
            self.catalog,
            self.region_sizes,
            self.notifier,
            settings or ChoreSettings(),
        )


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def db():
    """Fresh in-memory schema per test."""
    from quota_observer.db import Base, engine, init_db

    init_db()
    yield
    Base.metadata.drop_all(bind=engine)
