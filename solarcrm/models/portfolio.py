"""Portfolio model module."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Float, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from solarcrm.models.base import AuditMixin, Base, CreatedAtMixin, IdMixin


class Portfolio(Base, IdMixin, AuditMixin):
    __tablename__ = "portfolios"
    __table_args__ = (Index("idx_portfolios_client", "client_id"),)

    client_id: Mapped[str] = mapped_column(ForeignKey("clients.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)


class PortfolioSite(Base, IdMixin, CreatedAtMixin):
    """Join row placing a site in a portfolio.

    The override columns, when set, replace the values the site's latest
    simulation run would contribute to the portfolio rollup.
    """

    __tablename__ = "portfolio_sites"
    __table_args__ = (
        UniqueConstraint("portfolio_id", "site_id", name="uq_portfolio_sites_pair"),
        Index("idx_portfolio_sites_site", "site_id"),
    )

    portfolio_id: Mapped[str] = mapped_column(ForeignKey("portfolios.id"), nullable=False)
    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id"), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    override_capex_net: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    override_pv_size_kw: Mapped[float | None] = mapped_column(Float)
