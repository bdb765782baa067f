"""Modular SQLAlchemy model package for the solarcrm schema."""

from solarcrm.models.agreements import (
    ConstructionAgreement,
    ConstructionMilestone,
    ConstructionProject,
    DesignAgreement,
)
from solarcrm.models.base import Base, utcnow
from solarcrm.models.client import Client
from solarcrm.models.enums import OpportunityStage, RfpStatus
from solarcrm.models.om import OmContract, OmPerformanceSnapshot, OmVisit
from solarcrm.models.pipeline import Activity, Lead, Opportunity
from solarcrm.models.portfolio import Portfolio, PortfolioSite
from solarcrm.models.simulation import BomItem, Design, SimulationRun
from solarcrm.models.site import MeterFile, MeterReading, Site, SiteVisit

__all__ = [
    "Activity",
    "Base",
    "BomItem",
    "Client",
    "ConstructionAgreement",
    "ConstructionMilestone",
    "ConstructionProject",
    "Design",
    "DesignAgreement",
    "Lead",
    "MeterFile",
    "MeterReading",
    "OmContract",
    "OmPerformanceSnapshot",
    "OmVisit",
    "Opportunity",
    "OpportunityStage",
    "Portfolio",
    "PortfolioSite",
    "RfpStatus",
    "SimulationRun",
    "Site",
    "SiteVisit",
    "utcnow",
]
