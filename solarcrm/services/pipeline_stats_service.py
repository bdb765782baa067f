"""Sales-funnel analytics computed from projected opportunities."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from solarcrm.core.config import get_config
from solarcrm.models import OpportunityStage, utcnow
from solarcrm.models.enums import DELIVERY_BACKLOG_STAGES, LOST_STAGE, PIPELINE_STAGES, WON_STAGES
from solarcrm.schemas.opportunities import OpportunityView
from solarcrm.schemas.pipeline import (
    AtRiskOpportunity,
    ConversionFunnelResult,
    FunnelStage,
    PipelineStatsResult,
    RecentWin,
    StageBreakdown,
    TopOpportunity,
)
from solarcrm.services.entity_store import EntityStore
from solarcrm.services.opportunity_service import OpportunityService
from solarcrm.utils.money import ZERO, quantize_cents, to_decimal, weighted

logger = logging.getLogger(__name__)

# Default win probability (percent) when an opportunity has none recorded.
STAGE_PROBABILITIES: dict[str, int] = {
    OpportunityStage.PROSPECT.value: 5,
    OpportunityStage.QUALIFIED.value: 20,
    OpportunityStage.PROPOSAL.value: 25,
    OpportunityStage.DESIGN_SIGNED.value: 50,
    OpportunityStage.NEGOTIATION.value: 90,
    OpportunityStage.WON_TO_BE_DELIVERED.value: 100,
    OpportunityStage.WON_IN_CONSTRUCTION.value: 100,
    OpportunityStage.WON_DELIVERED.value: 100,
    OpportunityStage.LOST.value: 0,
}

FUNNEL_STAGES = [stage for stage in PIPELINE_STAGES if stage != LOST_STAGE]

_SECONDS_PER_DAY = 86400


def effective_probability(opportunity: OpportunityView) -> int:
    if opportunity.probability is not None:
        return opportunity.probability
    return STAGE_PROBABILITIES.get(opportunity.stage, 0)


def is_won(opportunity: OpportunityView) -> bool:
    return opportunity.stage in WON_STAGES


def is_lost(opportunity: OpportunityView) -> bool:
    return opportunity.stage == LOST_STAGE


def is_active(opportunity: OpportunityView) -> bool:
    return not is_won(opportunity) and not is_lost(opportunity)


def _value(opportunity: OpportunityView) -> Decimal:
    return to_decimal(opportunity.estimated_value)


def _round_half_up(value: float, places: int) -> float:
    step = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(step, rounding=ROUND_HALF_UP))


def _days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / _SECONDS_PER_DAY


def _as_naive_utc(moment: datetime | None) -> datetime:
    # Stored timestamps are naive UTC; aware inputs are converted to match.
    if moment is None:
        return utcnow()
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


class PipelineStatsService:
    """Stage totals, weighted value, at-risk and recently-won lists."""

    def __init__(
        self,
        store: EntityStore | None = None,
        opportunity_service: OpportunityService | None = None,
        at_risk_days: int | None = None,
        top_n: int | None = None,
    ) -> None:
        config = get_config()
        self.store = store or EntityStore()
        self.opportunity_service = opportunity_service or OpportunityService(self.store)
        self.at_risk_days = at_risk_days if at_risk_days is not None else config.AT_RISK_DAYS
        self.top_n = top_n if top_n is not None else config.PIPELINE_TOP_N

    def _client_names(self, opportunities: list[OpportunityView]) -> dict[str, str]:
        clients = self.store.get_clients_by_ids(opp.client_id for opp in opportunities)
        return {client.id: client.name for client in clients}

    def compute_pipeline_stats(self, now: datetime | None = None) -> PipelineStatsResult:
        now = _as_naive_utc(now)
        opportunities = self.opportunity_service.get_opportunities()
        client_names = self._client_names(opportunities)

        total_value = weighted_value = won_value = lost_value = ZERO
        backlog_value = delivered_value = ZERO
        backlog_count = delivered_count = 0
        stage_totals: dict[str, list] = defaultdict(lambda: [0, ZERO, ZERO])
        active: list[OpportunityView] = []
        won: list[OpportunityView] = []

        for opp in opportunities:
            value = _value(opp)
            opp_weighted = weighted(value, effective_probability(opp))

            bucket = stage_totals[opp.stage]
            bucket[0] += 1
            bucket[1] += value
            bucket[2] += opp_weighted

            if is_lost(opp):
                lost_value += value
            elif is_won(opp):
                won.append(opp)
                won_value += value
                if opp.stage in DELIVERY_BACKLOG_STAGES:
                    backlog_value += value
                    backlog_count += 1
                else:
                    delivered_value += value
                    delivered_count += 1
            else:
                active.append(opp)
                total_value += value
                weighted_value += opp_weighted

        stage_breakdown = [
            StageBreakdown(
                stage=stage,
                count=stage_totals[stage][0],
                total_value=quantize_cents(stage_totals[stage][1]),
                weighted_value=quantize_cents(stage_totals[stage][2]),
            )
            for stage in PIPELINE_STAGES
        ]

        result = PipelineStatsResult(
            total_pipeline_value=quantize_cents(total_value),
            weighted_pipeline_value=quantize_cents(weighted_value),
            won_value=quantize_cents(won_value),
            lost_value=quantize_cents(lost_value),
            delivery_backlog_value=quantize_cents(backlog_value),
            delivery_backlog_count=backlog_count,
            delivered_value=quantize_cents(delivered_value),
            delivered_count=delivered_count,
            active_opportunity_count=len(active),
            stage_breakdown=stage_breakdown,
            top_opportunities=self._top_opportunities(active, client_names),
            at_risk_opportunities=self._at_risk(active, client_names, now),
            recent_wins=self._recent_wins(won, client_names),
        )
        logger.info(
            "pipeline.stats.computed",
            extra={
                "event": "pipeline.stats.computed",
                "opportunity_count": len(opportunities),
                "active_count": len(active),
            },
        )
        return result

    def _top_opportunities(
        self, active: list[OpportunityView], client_names: dict[str, str]
    ) -> list[TopOpportunity]:
        ranked = sorted(
            (opp for opp in active if _value(opp) > 0),
            key=_value,
            reverse=True,
        )
        return [
            TopOpportunity(
                id=opp.id,
                name=opp.name,
                client_name=client_names.get(opp.client_id) if opp.client_id else None,
                stage=opp.stage,
                probability=effective_probability(opp),
                estimated_value=opp.estimated_value,
                updated_at=opp.updated_at,
            )
            for opp in ranked[: self.top_n]
        ]

    def _at_risk(
        self, active: list[OpportunityView], client_names: dict[str, str], now: datetime
    ) -> list[AtRiskOpportunity]:
        cutoff = now - timedelta(days=self.at_risk_days)
        stale = []
        for opp in active:
            last_activity = opp.updated_at or opp.created_at
            if last_activity is None or last_activity >= cutoff:
                continue
            days = int(_days_between(last_activity, now))
            stale.append((days, opp))

        stale.sort(key=lambda item: item[0], reverse=True)
        return [
            AtRiskOpportunity(
                id=opp.id,
                name=opp.name,
                client_name=client_names.get(opp.client_id) if opp.client_id else None,
                stage=opp.stage,
                estimated_value=opp.estimated_value,
                days_since_update=days,
            )
            for days, opp in stale[: self.top_n]
        ]

    def _recent_wins(self, won: list[OpportunityView], client_names: dict[str, str]) -> list[RecentWin]:
        ranked = sorted(
            won,
            key=lambda opp: (opp.updated_at is not None, opp.updated_at or datetime.min),
            reverse=True,
        )
        return [
            RecentWin(
                id=opp.id,
                name=opp.name,
                client_name=client_names.get(opp.client_id) if opp.client_id else None,
                estimated_value=opp.estimated_value,
                updated_at=opp.updated_at,
            )
            for opp in ranked[: self.top_n]
        ]

    def compute_conversion_funnel(
        self, period_days: int | None = None, now: datetime | None = None
    ) -> ConversionFunnelResult:
        """Stage counts, stage-to-stage conversion and deal-cycle timings.

        Counts and timings cover every opportunity; ``created_in_period``
        counts those created within the last ``period_days``.
        """
        period_days = period_days if period_days is not None else get_config().FUNNEL_PERIOD_DAYS
        now = _as_naive_utc(now)
        period_start = now - timedelta(days=period_days)
        opportunities = self.opportunity_service.get_opportunities()

        counts: Counter = Counter(opp.stage for opp in opportunities)
        timings: dict[str, list[float]] = defaultdict(list)
        for opp in opportunities:
            if opp.created_at and opp.updated_at:
                timings[opp.stage].append(_days_between(opp.created_at, opp.updated_at))

        funnel = []
        for index, stage in enumerate(FUNNEL_STAGES):
            count = counts[stage]
            conversion = 0.0
            if index < len(FUNNEL_STAGES) - 1 and count > 0:
                conversion = counts[FUNNEL_STAGES[index + 1]] / count
            stage_days = timings.get(stage)
            avg_days = sum(stage_days) / len(stage_days) if stage_days else 0.0
            funnel.append(
                FunnelStage(
                    stage=stage,
                    count=count,
                    conversion_to_next=_round_half_up(conversion, 4),
                    avg_days_in_stage=_round_half_up(avg_days, 1),
                )
            )

        total = len(opportunities)
        won = [opp for opp in opportunities if is_won(opp)]
        win_rate = len(won) / total if total else 0.0
        cycles = [
            _days_between(opp.created_at, opp.updated_at)
            for opp in won
            if opp.created_at and opp.updated_at
        ]
        avg_cycle = sum(cycles) / len(cycles) if cycles else 0.0

        lost_reasons: Counter = Counter(
            opp.lost_reason for opp in opportunities if is_lost(opp) and opp.lost_reason
        )

        return ConversionFunnelResult(
            funnel=funnel,
            win_rate=_round_half_up(win_rate, 4),
            avg_deal_cycle=_round_half_up(avg_cycle, 1),
            lost_reasons=dict(lost_reasons),
            total_opportunities=total,
            created_in_period=sum(
                1 for opp in opportunities if opp.created_at is not None and opp.created_at >= period_start
            ),
            period_days=period_days,
        )
