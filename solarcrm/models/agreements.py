"""Design and construction agreement model module."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from solarcrm.models.base import AuditMixin, Base, IdMixin
from solarcrm.models.enums import DesignAgreementStatus


class DesignAgreement(Base, IdMixin, AuditMixin):
    __tablename__ = "design_agreements"
    __table_args__ = (Index("idx_design_agreements_site", "site_id"),)

    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id"), nullable=False)
    site_visit_id: Mapped[str | None] = mapped_column(ForeignKey("site_visits.id"))
    status: Mapped[str] = mapped_column(String(20), default=DesignAgreementStatus.DRAFT.value, nullable=False)
    total_cad: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime)


class ConstructionAgreement(Base, IdMixin, AuditMixin):
    __tablename__ = "construction_agreements"
    __table_args__ = (Index("idx_construction_agreements_site", "site_id"),)

    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)
    contract_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))


class ConstructionMilestone(Base, IdMixin, AuditMixin):
    __tablename__ = "construction_milestones"
    __table_args__ = (Index("idx_construction_milestones_agreement", "construction_agreement_id"),)

    construction_agreement_id: Mapped[str] = mapped_column(
        ForeignKey("construction_agreements.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    percent_of_contract: Mapped[int | None] = mapped_column(Integer)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime)


class ConstructionProject(Base, IdMixin, AuditMixin):
    __tablename__ = "construction_projects"
    __table_args__ = (Index("idx_construction_projects_site", "site_id"),)

    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="planning", nullable=False)
