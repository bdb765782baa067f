"""Live capex and PV capacity rollups for portfolios."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from solarcrm.models import PortfolioSite, RfpStatus, SimulationRun
from solarcrm.schemas.kpis import PortfolioKPIs, RfpBreakdown
from solarcrm.services.entity_store import EntityStore
from solarcrm.utils.money import ZERO, quantize_cents, to_decimal

logger = logging.getLogger(__name__)


def _run_rank(run: SimulationRun) -> tuple:
    # Undated runs rank below every dated run; equal timestamps fall back to id.
    return (run.created_at is not None, run.created_at or 0, run.id)


def latest_runs_by_site(runs: Iterable[SimulationRun]) -> dict[str, SimulationRun]:
    """Pick the most recent simulation run for each site."""
    latest: dict[str, SimulationRun] = {}
    for run in runs:
        current = latest.get(run.site_id)
        if current is None or _run_rank(run) > _run_rank(current):
            latest[run.site_id] = run
    return latest


def effective_values(
    member: PortfolioSite, latest_run: SimulationRun | None
) -> tuple[Decimal, float]:
    """Override when set, else the latest run's value, else zero."""
    if member.override_capex_net is not None:
        capex = to_decimal(member.override_capex_net)
    elif latest_run is not None:
        capex = to_decimal(latest_run.capex_net)
    else:
        capex = ZERO

    if member.override_pv_size_kw is not None:
        pv_kw = float(member.override_pv_size_kw)
    elif latest_run is not None and latest_run.pv_size_kw is not None:
        pv_kw = float(latest_run.pv_size_kw)
    else:
        pv_kw = 0.0
    return capex, pv_kw


class PortfolioKPIService:
    """Computes portfolio totals on demand; nothing is cached or persisted."""

    def __init__(self, store: EntityStore | None = None) -> None:
        self.store = store or EntityStore()

    def compute_portfolio_kpis(self, portfolio_id: str) -> PortfolioKPIs:
        return self.compute_many([portfolio_id])[portfolio_id]

    def compute_many(self, portfolio_ids: Iterable[str]) -> dict[str, PortfolioKPIs]:
        """KPIs for every requested portfolio in three store round-trips.

        Portfolios without members (or unknown ids) get all-zero KPIs.
        """
        wanted = list(dict.fromkeys(portfolio_ids))
        if not wanted:
            return {}

        members = self.store.get_portfolio_sites_for(wanted)
        site_ids = list(dict.fromkeys(member.site_id for member in members))
        latest = latest_runs_by_site(self.store.get_simulation_runs_by_site_ids(site_ids))
        eligible = {
            site.id
            for site in self.store.get_sites_by_ids(site_ids)
            if site.hq_rfp_status == RfpStatus.ELIGIBLE.value
        }

        members_by_portfolio: dict[str, list[PortfolioSite]] = defaultdict(list)
        for member in members:
            members_by_portfolio[member.portfolio_id].append(member)

        results = {
            portfolio_id: self._aggregate(portfolio_id, members_by_portfolio.get(portfolio_id, []), latest, eligible)
            for portfolio_id in wanted
        }
        logger.debug(
            "portfolio.kpis.computed",
            extra={
                "event": "portfolio.kpis.computed",
                "portfolio_count": len(wanted),
                "site_count": len(site_ids),
            },
        )
        return results

    def _aggregate(
        self,
        portfolio_id: str,
        members: list[PortfolioSite],
        latest: dict[str, SimulationRun],
        eligible: set[str],
    ) -> PortfolioKPIs:
        total_capex = ZERO
        total_pv_kw = 0.0
        rfp = {True: [0, ZERO, 0.0], False: [0, ZERO, 0.0]}

        for member in members:
            capex, pv_kw = effective_values(member, latest.get(member.site_id))
            total_capex += capex
            total_pv_kw += pv_kw
            bucket = rfp[member.site_id in eligible]
            bucket[0] += 1
            bucket[1] += capex
            bucket[2] += pv_kw

        return PortfolioKPIs(
            portfolio_id=portfolio_id,
            total_capex=quantize_cents(total_capex),
            total_pv_kw=total_pv_kw,
            site_count=len(members),
            rfp_breakdown=RfpBreakdown(
                eligible_sites=rfp[True][0],
                eligible_capex=quantize_cents(rfp[True][1]),
                eligible_pv_kw=rfp[True][2],
                non_eligible_sites=rfp[False][0],
                non_eligible_capex=quantize_cents(rfp[False][1]),
                non_eligible_pv_kw=rfp[False][2],
                total_sites=len(members),
            ),
        )
