"""Typed qualification sub-document stored on opportunities.

Four gates: economic potential, right to install, roof condition and
decision capacity. Stored as JSON, always validated through this model.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from solarcrm.core.exceptions import ValidationError
from solarcrm.schemas.common import CamelModel

EconomicStatus = Literal["high", "medium", "low", "insufficient"]
PropertyRelationship = Literal["owner", "tenant_authorized", "tenant_pending", "tenant_no_auth", "unknown"]
RoofCondition = Literal["excellent", "good", "needs_repair", "needs_replacement", "unknown"]
RoofAge = Literal["new", "recent", "mature", "old", "unknown"]
DecisionAuthority = Literal["decision_maker", "influencer", "researcher", "unknown"]
BudgetReadiness = Literal["budget_allocated", "budget_possible", "budget_needed", "no_budget", "unknown"]
TimelineUrgency = Literal["immediate", "this_year", "next_year", "exploring", "unknown"]
BlockerType = Literal[
    "insufficient_bill",
    "property_authorization",
    "roof_repair_needed",
    "roof_replacement_needed",
    "no_decision_authority",
    "no_budget",
    "long_timeline",
    "other",
]


class Blocker(CamelModel):
    model_config = ConfigDict(extra="forbid")

    type: BlockerType
    description: str = Field(min_length=1, max_length=2000)
    severity: Literal["critical", "major", "minor"]


class QualificationData(CamelModel):
    model_config = ConfigDict(extra="forbid")

    estimated_monthly_bill: float | None = Field(default=None, ge=0)
    economic_status: EconomicStatus = "insufficient"
    property_relationship: PropertyRelationship = "unknown"
    roof_condition: RoofCondition = "unknown"
    roof_age: RoofAge = "unknown"
    roof_age_years: int | None = Field(default=None, ge=0, le=150)
    decision_authority: DecisionAuthority = "unknown"
    budget_readiness: BudgetReadiness = "unknown"
    timeline_urgency: TimelineUrgency = "unknown"
    blockers: list[Blocker] = Field(default_factory=list)


def normalize_qualification(qualification: Any) -> dict[str, Any] | None:
    """Validate a qualification document and return its stored JSON form."""
    if qualification is None:
        return None
    try:
        document = QualificationData.model_validate(qualification)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid qualification data: {exc}") from exc
    return document.model_dump(mode="json")
