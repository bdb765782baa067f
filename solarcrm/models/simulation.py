"""Simulation run model module with its designs and bill of materials."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Float, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from solarcrm.models.base import Base, CreatedAtMixin, IdMixin


class SimulationRun(Base, IdMixin, CreatedAtMixin):
    __tablename__ = "simulation_runs"
    __table_args__ = (Index("idx_simulation_runs_site_created", "site_id", "created_at"),)

    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id"), nullable=False)
    label: Mapped[str | None] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(20), default="SCENARIO", nullable=False)
    pv_size_kw: Mapped[float | None] = mapped_column(Float)
    batt_energy_kwh: Mapped[float | None] = mapped_column(Float)
    capex_net: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    annual_savings: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))


class Design(Base, IdMixin, CreatedAtMixin):
    __tablename__ = "designs"
    __table_args__ = (Index("idx_designs_run", "simulation_run_id"),)

    simulation_run_id: Mapped[str] = mapped_column(ForeignKey("simulation_runs.id"), nullable=False)
    design_name: Mapped[str] = mapped_column(String(255), nullable=False)
    pv_size_kw: Mapped[float | None] = mapped_column(Float)
    total_capex: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))


class BomItem(Base, IdMixin):
    __tablename__ = "bom_items"
    __table_args__ = (Index("idx_bom_items_design", "design_id"),)

    design_id: Mapped[str] = mapped_column(ForeignKey("designs.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="ea", nullable=False)
    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
