"""Site model module: the building and its metering and visit records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from solarcrm.models.base import AuditMixin, Base, CreatedAtMixin, IdMixin
from solarcrm.models.enums import SiteVisitStatus


class Site(Base, IdMixin, AuditMixin):
    __tablename__ = "sites"
    __table_args__ = (Index("idx_sites_client", "client_id"),)

    client_id: Mapped[str] = mapped_column(ForeignKey("clients.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(String(120))
    province: Mapped[str | None] = mapped_column(String(120))
    roof_area_sqm: Mapped[float | None] = mapped_column(Float)
    hq_rfp_status: Mapped[str | None] = mapped_column(String(40))
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class MeterFile(Base, IdMixin, CreatedAtMixin):
    __tablename__ = "meter_files"
    __table_args__ = (Index("idx_meter_files_site", "site_id"),)

    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id"), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    granularity: Mapped[str] = mapped_column(String(20), default="HOUR", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="UPLOADED", nullable=False)


class MeterReading(Base, IdMixin):
    __tablename__ = "meter_readings"
    __table_args__ = (Index("idx_meter_readings_file", "meter_file_id"),)

    meter_file_id: Mapped[str] = mapped_column(ForeignKey("meter_files.id"), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    kwh: Mapped[float | None] = mapped_column(Float)
    kw: Mapped[float | None] = mapped_column(Float)


class SiteVisit(Base, IdMixin, AuditMixin):
    __tablename__ = "site_visits"
    __table_args__ = (Index("idx_site_visits_site", "site_id"),)

    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id"), nullable=False)
    visit_date: Mapped[datetime | None] = mapped_column(DateTime)
    visited_by: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default=SiteVisitStatus.SCHEDULED.value, nullable=False)
