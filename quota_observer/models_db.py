"""SQLAlchemy ORM models: quota definitions, table catalog, region size reports, enforcements."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from quota_observer.db import Base


class SpaceQuotaSetting(Base):
    """A space quota defined on a table (``ns:table``) or a namespace."""

    __tablename__ = "space_quota"

    kind: Mapped[str] = mapped_column(String(16), primary_key=True)  # 'table', 'namespace'
    subject: Mapped[str] = mapped_column(String(255), primary_key=True)
    limit_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    violation_policy: Mapped[str | None] = mapped_column(String(32), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class TableRegion(Base):
    """Catalog entry: one region of a table."""

    __tablename__ = "table_region"

    region_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    table_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)  # ns:table
    namespace: Mapped[str] = mapped_column(String(255), nullable=False, index=True)


class RegionSizeReport(Base):
    """Last size reported by the region server hosting a region.

    The owning table is read from ``table_region``, so a report follows its region when it moves.
    """

    __tablename__ = "region_size_report"

    region_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    size_bytes: Mapped[int] = mapped_column(BigInteger, default=0)
    reported_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SpaceQuotaEnforcement(Base):
    """Violation policy currently in effect on a table. Region servers read this table."""

    __tablename__ = "space_quota_enforcement"

    table_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    violation_policy: Mapped[str] = mapped_column(String(32), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
