"""Portfolio rollup schemas."""

from __future__ import annotations

from decimal import Decimal

from pydantic import Field

from solarcrm.schemas.common import CamelModel
from solarcrm.utils.money import ZERO


class RfpBreakdown(CamelModel):
    eligible_sites: int = 0
    eligible_capex: Decimal = ZERO
    eligible_pv_kw: float = Field(default=0.0, alias="eligiblePvKW")
    non_eligible_sites: int = 0
    non_eligible_capex: Decimal = ZERO
    non_eligible_pv_kw: float = Field(default=0.0, alias="nonEligiblePvKW")
    total_sites: int = 0


class PortfolioKPIs(CamelModel):
    portfolio_id: str
    total_capex: Decimal = ZERO
    total_pv_kw: float = Field(default=0.0, alias="totalPvKW")
    site_count: int = 0
    rfp_breakdown: RfpBreakdown = Field(default_factory=RfpBreakdown)

    @property
    def has_data(self) -> bool:
        return self.site_count > 0
