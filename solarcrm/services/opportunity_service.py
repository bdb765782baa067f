"""Opportunity repository boundary: every read is projected."""

from __future__ import annotations

import logging
from typing import Any

from solarcrm.core.exceptions import ValidationError
from solarcrm.models import Activity, Opportunity, OpportunityStage, utcnow
from solarcrm.models.enums import LOST_STAGE, WON_STAGES
from solarcrm.schemas.opportunities import OpportunityView
from solarcrm.services.entity_store import EntityStore
from solarcrm.services.opportunity_projector import project_opportunities
from solarcrm.services.portfolio_kpi_service import PortfolioKPIService

logger = logging.getLogger(__name__)

_STAGES = {stage.value for stage in OpportunityStage}


def _validate_stage(stage: str) -> str:
    value = stage.value if isinstance(stage, OpportunityStage) else stage
    if value not in _STAGES:
        raise ValidationError(f"Unknown opportunity stage: {stage!r}.")
    return value


def _validate_probability(probability: int | None) -> int | None:
    if probability is not None and not 0 <= probability <= 100:
        raise ValidationError("Probability must be between 0 and 100.")
    return probability


def _clean_values(values: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(values)
    if "stage" in cleaned:
        cleaned["stage"] = _validate_stage(cleaned["stage"])
    if "probability" in cleaned:
        _validate_probability(cleaned["probability"])
    return cleaned


class OpportunityService:
    """Reads return ``OpportunityView`` objects with portfolio totals applied."""

    def __init__(self, store: EntityStore | None = None, kpi_service: PortfolioKPIService | None = None) -> None:
        self.store = store or EntityStore()
        self.kpi_service = kpi_service or PortfolioKPIService(self.store)

    def _project(self, rows: list[Opportunity]) -> list[OpportunityView]:
        kpis = self.kpi_service.compute_many(row.portfolio_id for row in rows if row.portfolio_id)
        return project_opportunities(rows, kpis)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_opportunities(self) -> list[OpportunityView]:
        return self._project(self.store.get_opportunity_rows())

    def get_opportunity(self, opportunity_id: str) -> OpportunityView | None:
        row = self.store.get(Opportunity, opportunity_id)
        if row is None:
            return None
        return self._project([row])[0]

    def get_opportunities_by_stage(self, stage: str) -> list[OpportunityView]:
        return self._project(self.store.get_opportunity_rows(stage=_validate_stage(stage)))

    def get_opportunities_by_lead(self, lead_id: str) -> list[OpportunityView]:
        return self._project(self.store.get_opportunity_rows(lead_id=lead_id))

    def get_opportunities_by_client(self, client_id: str) -> list[OpportunityView]:
        return self._project(self.store.get_opportunity_rows(client_id=client_id))

    def get_opportunities_by_site(self, site_id: str) -> list[OpportunityView]:
        return self._project(self.store.get_opportunity_rows(site_id=site_id))

    def get_opportunities_by_owner(self, owner_id: str) -> list[OpportunityView]:
        return self._project(self.store.get_opportunity_rows(owner_id=owner_id))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_opportunity(self, name: str, **values: Any) -> OpportunityView:
        row = self.store.create(Opportunity, name=name, **_clean_values(values))
        logger.info(
            "opportunity.created",
            extra={"event": "opportunity.created", "opportunity_id": row.id, "stage": row.stage},
        )
        return self._project([row])[0]

    def update_opportunity(self, opportunity_id: str, **values: Any) -> OpportunityView | None:
        """Partial update; only the supplied fields change."""
        row = self.store.update(Opportunity, opportunity_id, **_clean_values(values))
        if row is None:
            return None
        return self._project([row])[0]

    def update_opportunity_stage(
        self,
        opportunity_id: str,
        stage: str,
        probability: int | None = None,
        lost_reason: str | None = None,
        lost_notes: str | None = None,
    ) -> OpportunityView | None:
        """Move an opportunity to ``stage``, stamping the close date on won/lost."""
        new_stage = _validate_stage(stage)
        values: dict[str, Any] = {"stage": new_stage}
        if probability is not None:
            values["probability"] = _validate_probability(probability)
        if new_stage in WON_STAGES or new_stage == LOST_STAGE:
            values["actual_close_date"] = utcnow()
        if new_stage == LOST_STAGE:
            if lost_reason is not None:
                values["lost_reason"] = lost_reason
            if lost_notes is not None:
                values["lost_notes"] = lost_notes

        row = self.store.update(Opportunity, opportunity_id, **values)
        if row is None:
            return None
        logger.info(
            "opportunity.stage_changed",
            extra={"event": "opportunity.stage_changed", "opportunity_id": opportunity_id, "stage": new_stage},
        )
        return self._project([row])[0]

    def delete_opportunity(self, opportunity_id: str) -> bool:
        """Delete the row; timeline activities are kept with the link cleared."""
        if self.store.get(Opportunity, opportunity_id) is None:
            return False
        with self.store.unit_of_work():
            self.store.detach_where(Activity, "opportunity_id", [opportunity_id])
            removed = self.store.delete(Opportunity, opportunity_id)
        return removed
