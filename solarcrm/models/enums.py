"""Canonical enum values for the solarcrm schema."""

from __future__ import annotations

import enum


class OpportunityStage(str, enum.Enum):
    PROSPECT = "prospect"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    DESIGN_SIGNED = "design_signed"
    NEGOTIATION = "negotiation"
    WON_TO_BE_DELIVERED = "won_to_be_delivered"
    WON_IN_CONSTRUCTION = "won_in_construction"
    WON_DELIVERED = "won_delivered"
    LOST = "lost"


class RfpStatus(str, enum.Enum):
    ELIGIBLE = "eligible"
    NOT_ELIGIBLE = "not_eligible"
    UNKNOWN = "unknown"


class DesignAgreementStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class SiteVisitStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


WON_STAGES = frozenset(
    {
        OpportunityStage.WON_TO_BE_DELIVERED.value,
        OpportunityStage.WON_IN_CONSTRUCTION.value,
        OpportunityStage.WON_DELIVERED.value,
    }
)
DELIVERY_BACKLOG_STAGES = frozenset(
    {
        OpportunityStage.WON_TO_BE_DELIVERED.value,
        OpportunityStage.WON_IN_CONSTRUCTION.value,
    }
)
LOST_STAGE = OpportunityStage.LOST.value
PIPELINE_STAGES = [stage.value for stage in OpportunityStage]
