"""Pipeline analytics result schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from solarcrm.schemas.common import CamelModel
from solarcrm.utils.money import ZERO


class StageBreakdown(CamelModel):
    stage: str
    count: int = 0
    total_value: Decimal = ZERO
    weighted_value: Decimal = ZERO


class TopOpportunity(CamelModel):
    id: str
    name: str
    client_name: str | None = None
    stage: str
    probability: int
    estimated_value: Decimal | None = None
    updated_at: datetime | None = None


class AtRiskOpportunity(CamelModel):
    id: str
    name: str
    client_name: str | None = None
    stage: str
    estimated_value: Decimal | None = None
    days_since_update: int


class RecentWin(CamelModel):
    id: str
    name: str
    client_name: str | None = None
    estimated_value: Decimal | None = None
    updated_at: datetime | None = None


class PipelineStatsResult(CamelModel):
    total_pipeline_value: Decimal = ZERO
    weighted_pipeline_value: Decimal = ZERO
    won_value: Decimal = ZERO
    lost_value: Decimal = ZERO
    delivery_backlog_value: Decimal = ZERO
    delivery_backlog_count: int = 0
    delivered_value: Decimal = ZERO
    delivered_count: int = 0
    active_opportunity_count: int = 0
    stage_breakdown: list[StageBreakdown] = []
    top_opportunities: list[TopOpportunity] = []
    at_risk_opportunities: list[AtRiskOpportunity] = []
    recent_wins: list[RecentWin] = []


class FunnelStage(CamelModel):
    stage: str
    count: int = 0
    conversion_to_next: float = 0.0
    avg_days_in_stage: float = 0.0


class ConversionFunnelResult(CamelModel):
    funnel: list[FunnelStage] = []
    win_rate: float = 0.0
    avg_deal_cycle: float = 0.0
    lost_reasons: dict[str, int] = {}
    total_opportunities: int = 0
    created_in_period: int = 0
    period_days: int
