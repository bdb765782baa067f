"""Read-time overlay of portfolio KPIs onto opportunities."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from solarcrm.schemas.kpis import PortfolioKPIs
from solarcrm.schemas.opportunities import OpportunityView


def project_opportunity(opportunity: Any, kpis: Mapping[str, PortfolioKPIs]) -> OpportunityView:
    view = OpportunityView.model_validate(opportunity)
    portfolio_kpis = kpis.get(view.portfolio_id) if view.portfolio_id else None
    if portfolio_kpis is None or not portfolio_kpis.has_data:
        return view
    return view.model_copy(
        update={
            "estimated_value": portfolio_kpis.total_capex,
            "pv_size_kw": portfolio_kpis.total_pv_kw,
            "rfp_breakdown": portfolio_kpis.rfp_breakdown,
            "synced_from_portfolio": True,
        }
    )


def project_opportunities(
    opportunities: Iterable[Any], kpis: Mapping[str, PortfolioKPIs]
) -> list[OpportunityView]:
    """Project stored opportunities into views, order preserved.

    Portfolio-linked rows take ``estimated_value`` and ``pv_size_kw`` from
    their portfolio's KPIs when that portfolio has member sites. Inputs are
    not mutated.
    """
    return [project_opportunity(opportunity, kpis) for opportunity in opportunities]
