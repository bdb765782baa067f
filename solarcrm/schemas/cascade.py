"""Pre-flight counts shown before destructive cascades."""

from __future__ import annotations

from solarcrm.schemas.common import CamelModel


class SiteCascadeCounts(CamelModel):
    simulations: int = 0
    meter_files: int = 0
    design_agreements: int = 0
    site_visits: int = 0


class ClientCascadeCounts(CamelModel):
    sites: int = 0
    portfolios: int = 0
    opportunities: int = 0
    simulations: int = 0
    design_agreements: int = 0
    site_visits: int = 0
    meter_files: int = 0

    @property
    def blocking_total(self) -> int:
        """Direct dependents that block a non-cascading client delete."""
        return self.sites + self.portfolios + self.opportunities
