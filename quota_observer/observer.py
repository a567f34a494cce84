"""Space quota observer: reconciles reported region sizes against table and namespace quotas.

Each pass reads the quota catalog, takes one snapshot of reported region sizes,
drops tables with too few region reports, then moves every table and namespace
toward its target state. Table quotas are evaluated first; a namespace quota is
never applied to, or lifted from, a table that is in violation of its own quota.

The last enforced state of every subject is kept in memory for the life of the
process and is changed only together with a notifier call.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Protocol, runtime_checkable

from quota_observer.models import ChoreSettings
from quota_observer.quota_common import (
    InvalidQuotaConfigurationError,
    QuotaSettings,
    RegionInfo,
    SpaceQuota,
    SpaceViolationPolicy,
    SubjectKind,
    TableName,
    ViolationState,
)
from quota_observer.tables_with_quotas import TablesWithQuotas
from quota_observer.utils import get_logger
from quota_observer.violation_store import (
    QuotaViolationStore,
    ViolationStateTracker,
    namespace_violation_store,
    table_violation_store,
)

logger = get_logger(__name__)


# --- Collaborators ---


@runtime_checkable
class QuotaSource(Protocol):
    """Quota catalog reader."""

    def list_space_quotas(self) -> list[QuotaSettings]: ...

    def get_table_space_quota(self, table: TableName) -> SpaceQuota | None: ...

    def get_namespace_space_quota(self, namespace: str) -> SpaceQuota | None: ...


@runtime_checkable
class TableCatalog(Protocol):
    """Namespace membership and region counts."""

    def list_tables_in_namespace(self, namespace: str) -> list[TableName]: ...

    def count_table_regions(self, table: TableName) -> int: ...


@runtime_checkable
class RegionSizeSource(Protocol):
    """Sizes last reported per region."""

    def snapshot_region_sizes(self) -> Mapping[RegionInfo, int]: ...


@runtime_checkable
class ViolationNotifier(Protocol):
    """Applies or lifts a violation policy on a table. Must be idempotent and raise on failure."""

    def transition_table_to_violation(self, table: TableName, policy: SpaceViolationPolicy) -> None: ...

    def transition_table_to_observance(self, table: TableName) -> None: ...


@dataclass
class PassSummary:
    """Outcome of one observer pass."""

    region_reports: int = 0
    tables_evaluated: int = 0
    namespaces_evaluated: int = 0
    tables_filtered: int = 0
    table_transitions: int = 0
    namespace_transitions: int = 0
    notifications: int = 0
    skipped_missing_quota: int = 0
    skipped_invalid_quota: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def get_violation_policy(quota: SpaceQuota) -> SpaceViolationPolicy:
    """Policy to enact for a quota.

    Raises:
        InvalidQuotaConfigurationError: the quota has no violation policy.
    """
    if quota.violation_policy is None:
        raise InvalidQuotaConfigurationError(f"SpaceQuota had no associated violation policy: {quota}")
    return quota.violation_policy


class QuotaObserverChore:
    """Periodic reconciliation of table and namespace space quota violations.

    Not safe for concurrent passes; the scheduler runs at most one at a time.

    Example:
        chore = QuotaObserverChore(DbQuotaSource(), DbTableCatalog(), DbRegionSizeSource(), notifier)
        chore.chore()  # once per period
    """

    def __init__(
        self,
        quota_source: QuotaSource,
        catalog: TableCatalog,
        region_sizes: RegionSizeSource,
        notifier: ViolationNotifier,
        settings: ChoreSettings | None = None,
    ) -> None:
        self.quota_source = quota_source
        self.catalog = catalog
        self.region_sizes = region_sizes
        self.notifier = notifier
        self.settings = settings or ChoreSettings()
        self._table_states: ViolationStateTracker[TableName] = ViolationStateTracker()
        self._namespace_states: ViolationStateTracker[str] = ViolationStateTracker()
        self.table_violation_store: QuotaViolationStore[TableName] | None = None
        self.namespace_violation_store: QuotaViolationStore[str] | None = None

    def chore(self) -> PassSummary | None:
        """Run one pass. A failure aborts the whole pass (None is returned); the next pass retries."""
        try:
            summary = self.run_pass()
        except Exception:
            logger.warning(
                "Failed to process quota reports and update quota violation state. Will retry.",
                exc_info=True,
            )
            return None
        logger.info("Quota observer pass complete: %s", summary.to_dict())
        return summary

    def run_pass(self) -> PassSummary:
        """One reconciliation pass. Raises on any collaborator failure."""
        summary = PassSummary()

        tables_with_quotas = self.fetch_all_tables_with_quotas_defined()
        logger.debug("Found following tables with quotas: %r", tables_with_quotas)

        # The single view of region space use for the whole pass
        region_sizes = self.region_sizes.snapshot_region_sizes()
        summary.region_reports = len(region_sizes)
        logger.debug("Using %d region space use reports", len(region_sizes))

        table_store, namespace_store = self.initialize_violation_stores(region_sizes)

        filtered = tables_with_quotas.filter_insufficiently_reported_tables(table_store)
        summary.tables_filtered = len(filtered)
        if filtered:
            logger.info("Skipping %d table(s) with insufficient region reports this pass", len(filtered))

        self._process_table_quotas(table_store, tables_with_quotas.table_quota_tables(), summary)
        self._process_namespace_quotas(
            namespace_store,
            table_store,
            tables_with_quotas.namespaces_with_quotas(),
            tables_with_quotas.tables_by_namespace(),
            summary,
        )
        return summary

    def fetch_all_tables_with_quotas_defined(self) -> TablesWithQuotas:
        """Tables with a table quota plus every table of a namespace with a namespace quota."""
        tables_with_quotas = TablesWithQuotas(self.settings.report_percent)
        for quota_settings in self.quota_source.list_space_quotas():
            if quota_settings.kind == SubjectKind.NAMESPACE:
                for table in self.catalog.list_tables_in_namespace(quota_settings.subject):
                    logger.debug("Adding %s under %s as having a namespace quota", table, quota_settings.subject)
                    tables_with_quotas.add_namespace_quota_table(table)
            else:
                table = TableName.value_of(quota_settings.subject)
                logger.debug("Adding %s as having table quota", table)
                tables_with_quotas.add_table_quota_table(table)
        return tables_with_quotas

    def initialize_violation_stores(
        self, region_sizes: Mapping[RegionInfo, int]
    ) -> tuple[QuotaViolationStore[TableName], QuotaViolationStore[str]]:
        """Table and namespace stores over the same snapshot; kept on the instance for diagnostics."""
        table_store = table_violation_store(
            region_sizes,
            self.quota_source.get_table_space_quota,
            self._table_states,
            self.catalog.count_table_regions,
        )
        namespace_store = namespace_violation_store(
            region_sizes,
            self.quota_source.get_namespace_space_quota,
            self._namespace_states,
        )
        self.table_violation_store = table_store
        self.namespace_violation_store = namespace_store
        return table_store, namespace_store

    def _process_table_quotas(
        self,
        store: QuotaViolationStore[TableName],
        tables: frozenset[TableName],
        summary: PassSummary,
    ) -> None:
        for table in tables:
            quota = store.get_space_quota(table)
            if quota is None:
                logger.debug("Unexpectedly did not find a space quota for %s, maybe it was recently deleted", table)
                summary.skipped_missing_quota += 1
                continue
            summary.tables_evaluated += 1
            current_state = store.get_current_state(table)
            target_state = store.get_target_state(table, quota)

            if current_state == ViolationState.IN_VIOLATION:
                if target_state == ViolationState.IN_OBSERVANCE:
                    logger.info("%s moving into observance of table space quota", table)
                    self.notifier.transition_table_to_observance(table)
                    summary.notifications += 1
                    summary.table_transitions += 1
                else:
                    logger.debug("%s remains in violation of quota", table)
            elif target_state == ViolationState.IN_VIOLATION:
                try:
                    policy = get_violation_policy(quota)
                except InvalidQuotaConfigurationError as e:
                    logger.error("Not enforcing table space quota for %s: %s", table, e)
                    summary.skipped_invalid_quota += 1
                    continue
                logger.info("%s moving into violation of table space quota", table)
                self.notifier.transition_table_to_violation(table, policy)
                summary.notifications += 1
                summary.table_transitions += 1
            else:
                logger.debug("%s remains in observance of quota", table)
            store.set_current_state(table, target_state)

    def _process_namespace_quotas(
        self,
        store: QuotaViolationStore[str],
        table_store: QuotaViolationStore[TableName],
        namespaces: set[str],
        tables_by_namespace: dict[str, set[TableName]],
        summary: PassSummary,
    ) -> None:
        for namespace in namespaces:
            quota = store.get_space_quota(namespace)
            if quota is None:
                logger.debug("Could not get namespace space quota for %s, maybe it was recently deleted", namespace)
                summary.skipped_missing_quota += 1
                continue
            summary.namespaces_evaluated += 1
            current_state = store.get_current_state(namespace)
            target_state = store.get_target_state(namespace, quota)
            if current_state == target_state:
                logger.debug("%s remains in %s of quota", namespace, current_state.value)
                continue

            policy: SpaceViolationPolicy | None = None
            if target_state == ViolationState.IN_VIOLATION:
                try:
                    policy = get_violation_policy(quota)
                except InvalidQuotaConfigurationError as e:
                    logger.error("Not enforcing namespace space quota for %s: %s", namespace, e)
                    summary.skipped_invalid_quota += 1
                    continue

            for table in tables_by_namespace.get(namespace, ()):
                if table_store.get_current_state(table) == ViolationState.IN_VIOLATION:
                    # Table quota violation policy already governs this table
                    logger.debug(
                        "Not changing namespace violation policy on %s; table violation policy is in effect",
                        table,
                    )
                    continue
                if policy is not None:
                    logger.info("%s moving into violation of namespace space quota", table)
                    self.notifier.transition_table_to_violation(table, policy)
                else:
                    logger.info("%s moving into observance of namespace space quota", table)
                    self.notifier.transition_table_to_observance(table)
                summary.notifications += 1
            store.set_current_state(namespace, target_state)
            summary.namespace_transitions += 1

    def table_violation_states(self) -> dict[TableName, ViolationState]:
        """Copy of the last enforced state of every tracked table."""
        return self._table_states.snapshot()

    def namespace_violation_states(self) -> dict[str, ViolationState]:
        """Copy of the last enforced state of every tracked namespace."""
        return self._namespace_states.snapshot()
