"""Sales pipeline model module: leads, opportunities and activities."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from solarcrm.models.base import AuditMixin, Base, IdMixin
from solarcrm.models.enums import OpportunityStage


class Lead(Base, IdMixin, AuditMixin):
    __tablename__ = "leads"

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    source: Mapped[str] = mapped_column(String(40), default="web_form", nullable=False)
    status: Mapped[str] = mapped_column(String(40), default="submitted", nullable=False)


class Opportunity(Base, IdMixin, AuditMixin):
    """A sales-pipeline deal.

    ``estimated_value`` and ``pv_size_kw`` are stored fallbacks. Readers go
    through ``OpportunityService``, which overlays live portfolio totals
    whenever ``portfolio_id`` is set. ``qualification`` holds a
    ``QualificationData`` document and is only written after validation.
    """

    __tablename__ = "opportunities"
    __table_args__ = (
        Index("idx_opportunities_stage", "stage"),
        Index("idx_opportunities_client", "client_id"),
        Index("idx_opportunities_site", "site_id"),
        Index("idx_opportunities_portfolio", "portfolio_id"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    lead_id: Mapped[str | None] = mapped_column(ForeignKey("leads.id"))
    client_id: Mapped[str | None] = mapped_column(ForeignKey("clients.id"))
    site_id: Mapped[str | None] = mapped_column(ForeignKey("sites.id"))
    portfolio_id: Mapped[str | None] = mapped_column(ForeignKey("portfolios.id"))
    owner_id: Mapped[str | None] = mapped_column(String(36))
    stage: Mapped[str] = mapped_column(String(40), default=OpportunityStage.PROSPECT.value, nullable=False)
    probability: Mapped[int | None] = mapped_column(Integer)
    estimated_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    pv_size_kw: Mapped[float | None] = mapped_column(Float)
    expected_close_date: Mapped[datetime | None] = mapped_column(DateTime)
    actual_close_date: Mapped[datetime | None] = mapped_column(DateTime)
    lost_reason: Mapped[str | None] = mapped_column(String(120))
    lost_notes: Mapped[str | None] = mapped_column(Text)
    qualification: Mapped[dict[str, Any] | None] = mapped_column(JSON)


class Activity(Base, IdMixin, AuditMixin):
    __tablename__ = "activities"
    __table_args__ = (
        Index("idx_activities_site", "site_id"),
        Index("idx_activities_opportunity", "opportunity_id"),
    )

    activity_type: Mapped[str] = mapped_column(String(40), nullable=False)
    subject: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    lead_id: Mapped[str | None] = mapped_column(ForeignKey("leads.id"))
    client_id: Mapped[str | None] = mapped_column(ForeignKey("clients.id"))
    site_id: Mapped[str | None] = mapped_column(ForeignKey("sites.id"))
    opportunity_id: Mapped[str | None] = mapped_column(ForeignKey("opportunities.id"))
    activity_date: Mapped[datetime | None] = mapped_column(DateTime)
