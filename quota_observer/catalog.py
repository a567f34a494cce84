"""Table catalog (namespace membership, regions per table) and region size reports.

The observer only reads through ``DbTableCatalog`` and ``DbRegionSizeSource``. The writers
(``add_table_region``, ``remove_table_region``, ``record_region_size``) are for the processes
that own this data: the region assignment side and the region servers reporting sizes.
"""

from collections.abc import Mapping
from types import MappingProxyType

from sqlalchemy import func

from quota_observer.db import SessionLocal
from quota_observer.models_db import RegionSizeReport, TableRegion
from quota_observer.quota_common import RegionInfo, TableName
from quota_observer.utils import get_logger

logger = get_logger(__name__)


def add_table_region(region_id: str, table: TableName) -> None:
    """Register (or move) a region in the catalog."""
    db = SessionLocal()
    try:
        row = db.query(TableRegion).filter(TableRegion.region_id == region_id).first()
        if row:
            row.table_name = str(table)
            row.namespace = table.namespace
        else:
            db.add(TableRegion(region_id=region_id, table_name=str(table), namespace=table.namespace))
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def remove_table_region(region_id: str) -> None:
    """Drop a region from the catalog (e.g. after a merge) along with its size report."""
    db = SessionLocal()
    try:
        db.query(TableRegion).filter(TableRegion.region_id == region_id).delete()
        db.query(RegionSizeReport).filter(RegionSizeReport.region_id == region_id).delete()
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def list_tables_in_namespace(namespace: str) -> list[TableName]:
    """Return the tables of a namespace (those with at least one region)."""
    db = SessionLocal()
    try:
        rows = (
            db.query(TableRegion.table_name)
            .filter(TableRegion.namespace == namespace)
            .distinct()
            .all()
        )
        return [TableName.value_of(r.table_name) for r in rows]
    finally:
        db.close()


def count_table_regions(table: TableName) -> int:
    """Current number of regions of a table."""
    db = SessionLocal()
    try:
        count = (
            db.query(func.count(TableRegion.region_id))
            .filter(TableRegion.table_name == str(table))
            .scalar()
        )
        return int(count or 0)
    finally:
        db.close()


def record_region_size(region_id: str, size_bytes: int) -> None:
    """Upsert the last reported size of a region."""
    db = SessionLocal()
    try:
        row = db.query(RegionSizeReport).filter(RegionSizeReport.region_id == region_id).first()
        if row:
            row.size_bytes = size_bytes
        else:
            db.add(RegionSizeReport(region_id=region_id, size_bytes=size_bytes))
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def snapshot_region_sizes() -> Mapping[RegionInfo, int]:
    """Point-in-time, read-only view of every cataloged region's last reported size.

    Regions are attributed to the table that currently owns them in ``table_region``;
    reports for regions missing from the catalog are left out.
    """
    db = SessionLocal()
    try:
        rows = (
            db.query(RegionSizeReport.region_id, TableRegion.table_name, RegionSizeReport.size_bytes)
            .select_from(RegionSizeReport)
            .join(TableRegion, TableRegion.region_id == RegionSizeReport.region_id)
            .all()
        )
        sizes = {
            RegionInfo(region_id=r.region_id, table=TableName.value_of(r.table_name)): r.size_bytes
            for r in rows
        }
    finally:
        db.close()
    logger.debug("Snapshot of %d region size reports", len(sizes))
    return MappingProxyType(sizes)


class DbTableCatalog:
    """Table catalog backed by the ``table_region`` table."""

    def list_tables_in_namespace(self, namespace: str) -> list[TableName]:
        return list_tables_in_namespace(namespace)

    def count_table_regions(self, table: TableName) -> int:
        return count_table_regions(table)


class DbRegionSizeSource:
    """Region size reports backed by the ``region_size_report`` table."""

    def snapshot_region_sizes(self) -> Mapping[RegionInfo, int]:
        return snapshot_region_sizes()
