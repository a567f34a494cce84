"""Tables that carry a quota, directly or through their namespace."""

from itertools import chain

from quota_observer.models import DEFAULT_REPORT_PERCENT
from quota_observer.quota_common import TableName
from quota_observer.utils import get_logger
from quota_observer.violation_store import QuotaViolationStore

logger = get_logger(__name__)


class TablesWithQuotas:
    """Tables with a table quota and tables inside a namespace with a namespace quota.

    A table may be in both sets. Namespaces are derived from the second set.
    """

    def __init__(self, report_percent: float = DEFAULT_REPORT_PERCENT) -> None:
        self.report_percent = report_percent
        self._tables_with_table_quotas: set[TableName] = set()
        self._tables_with_namespace_quotas: set[TableName] = set()

    def add_table_quota_table(self, table: TableName) -> None:
        self._tables_with_table_quotas.add(table)

    def add_namespace_quota_table(self, table: TableName) -> None:
        self._tables_with_namespace_quotas.add(table)

    def has_table_quota(self, table: TableName) -> bool:
        return table in self._tables_with_table_quotas

    def has_namespace_quota(self, table: TableName) -> bool:
        return table in self._tables_with_namespace_quotas

    def table_quota_tables(self) -> frozenset[TableName]:
        return frozenset(self._tables_with_table_quotas)

    def namespace_quota_tables(self) -> frozenset[TableName]:
        return frozenset(self._tables_with_namespace_quotas)

    def namespaces_with_quotas(self) -> set[str]:
        return {table.namespace for table in self._tables_with_namespace_quotas}

    def tables_by_namespace(self) -> dict[str, set[TableName]]:
        """Tables under a namespace quota, grouped by namespace."""
        grouped: dict[str, set[TableName]] = {}
        for table in self._tables_with_namespace_quotas:
            grouped.setdefault(table.namespace, set()).add(table)
        return grouped

    def filter_insufficiently_reported_tables(
        self,
        table_store: QuotaViolationStore[TableName],
        report_percent: float | None = None,
    ) -> set[TableName]:
        """Drop every table with too few regions reported from both sets. Returns the dropped tables.

        A table with no regions at all counts as insufficiently reported.
        """
        threshold = self.report_percent if report_percent is None else report_percent
        to_remove: set[TableName] = set()
        seen: set[TableName] = set()
        for table in chain(self._tables_with_table_quotas, self._tables_with_namespace_quotas):
            if table in seen:
                continue
            seen.add(table)
            num_regions = table_store.get_total_regions(table)
            num_reported = len(table_store.filter_by_subject(table))
            ratio = num_reported / num_regions if num_regions > 0 else 0.0
            if num_regions <= 0 or ratio < threshold:
                logger.debug(
                    "Filtering %s because %d of %d regions were reported", table, num_reported, num_regions
                )
                to_remove.add(table)
            else:
                logger.debug(
                    "Retaining %s because %d of %d regions were reported", table, num_reported, num_regions
                )
        self._tables_with_table_quotas -= to_remove
        self._tables_with_namespace_quotas -= to_remove
        return to_remove

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(tables_with_table_quotas={sorted(map(str, self._tables_with_table_quotas))}, "
            f"tables_with_namespace_quotas={sorted(map(str, self._tables_with_namespace_quotas))})"
        )
