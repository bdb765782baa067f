"""Read contract for opportunities.

An ``OpportunityView`` is what every reader of opportunities observes. When
``portfolio_id`` is set and the portfolio has member sites,
``estimated_value`` and ``pv_size_kw`` carry the live portfolio rollup and
``rfp_breakdown`` is present; the values stored on the row are only a
fallback for unlinked or empty portfolios. A stored qualification document
that no longer validates reads as ``None`` and is logged.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import ConfigDict, Field, ValidatorFunctionWrapHandler, field_validator
from pydantic import ValidationError as PydanticValidationError

from solarcrm.schemas.common import CamelModel
from solarcrm.schemas.kpis import RfpBreakdown
from solarcrm.schemas.qualification import QualificationData

logger = logging.getLogger(__name__)


class OpportunityView(CamelModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    stage: str
    probability: int | None = None
    estimated_value: Decimal | None = None
    pv_size_kw: float | None = Field(default=None, alias="pvSizeKW")
    lead_id: str | None = None
    client_id: str | None = None
    site_id: str | None = None
    portfolio_id: str | None = None
    owner_id: str | None = None
    expected_close_date: datetime | None = None
    actual_close_date: datetime | None = None
    lost_reason: str | None = None
    lost_notes: str | None = None
    qualification: QualificationData | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    rfp_breakdown: RfpBreakdown | None = None
    synced_from_portfolio: bool = False

    @field_validator("qualification", mode="wrap")
    @classmethod
    def _drop_invalid_qualification(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> QualificationData | None:
        try:
            return handler(value)
        except PydanticValidationError as exc:
            logger.warning(
                "opportunity.qualification.invalid",
                extra={"event": "opportunity.qualification.invalid", "errors": exc.error_count()},
            )
            return None
