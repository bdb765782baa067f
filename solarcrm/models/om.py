"""Operations and maintenance model module."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Float, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from solarcrm.models.base import AuditMixin, Base, CreatedAtMixin, IdMixin


class OmContract(Base, IdMixin, AuditMixin):
    __tablename__ = "om_contracts"
    __table_args__ = (
        Index("idx_om_contracts_site", "site_id"),
        Index("idx_om_contracts_client", "client_id"),
    )

    client_id: Mapped[str] = mapped_column(ForeignKey("clients.id"), nullable=False)
    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    annual_fee: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))


class OmVisit(Base, IdMixin, AuditMixin):
    __tablename__ = "om_visits"
    __table_args__ = (Index("idx_om_visits_contract", "om_contract_id"),)

    om_contract_id: Mapped[str] = mapped_column(ForeignKey("om_contracts.id"), nullable=False)
    scheduled_date: Mapped[datetime | None] = mapped_column(DateTime)
    status: Mapped[str] = mapped_column(String(20), default="scheduled", nullable=False)


class OmPerformanceSnapshot(Base, IdMixin, CreatedAtMixin):
    __tablename__ = "om_performance_snapshots"
    __table_args__ = (Index("idx_om_snapshots_contract", "om_contract_id"),)

    om_contract_id: Mapped[str] = mapped_column(ForeignKey("om_contracts.id"), nullable=False)
    period_start: Mapped[datetime | None] = mapped_column(DateTime)
    production_kwh: Mapped[float | None] = mapped_column(Float)
    performance_ratio: Mapped[float | None] = mapped_column(Float)
