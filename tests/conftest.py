from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from solarcrm.database.db import enable_sqlite_foreign_keys
from solarcrm.models import (
    Base,
    BomItem,
    Client,
    Design,
    DesignAgreement,
    MeterFile,
    MeterReading,
    Opportunity,
    Portfolio,
    SimulationRun,
    Site,
    SiteVisit,
)
from solarcrm.services.entity_store import EntityStore

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture
def session():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def store(session):
    return EntityStore(db=session)


class Seeder:
    """Small builders for the graphs the service tests need."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def client(self, name: str = "Acme Foods") -> Client:
        return self.store.create(Client, name=name)

    def site(self, client: Client, name: str = "Warehouse", **values) -> Site:
        return self.store.create(Site, client_id=client.id, name=name, **values)

    def run(self, site: Site, capex_net=None, pv_size_kw=None, created_at=BASE_TIME, **values) -> SimulationRun:
        if capex_net is not None:
            capex_net = Decimal(str(capex_net))
        return self.store.create(
            SimulationRun,
            site_id=site.id,
            capex_net=capex_net,
            pv_size_kw=pv_size_kw,
            created_at=created_at,
            **values,
        )

    def portfolio(self, client: Client, name: str = "Retail roll-out") -> Portfolio:
        return self.store.create(Portfolio, client_id=client.id, name=name)

    def opportunity(self, name: str = "Rooftop PV", **values) -> Opportunity:
        if values.get("estimated_value") is not None:
            values["estimated_value"] = Decimal(str(values["estimated_value"]))
        return self.store.create(Opportunity, name=name, **values)

    def full_site(self, client: Client, meter_files: int = 2, runs: int = 2, visits: int = 2) -> Site:
        """A site with meter data, runs with designs and BOMs, visits and an agreement."""
        site = self.site(client)
        for index in range(meter_files):
            meter_file = self.store.create(MeterFile, site_id=site.id, file_name=f"meter-{index}.csv")
            for hour in range(3):
                self.store.create(
                    MeterReading,
                    meter_file_id=meter_file.id,
                    timestamp=BASE_TIME + timedelta(hours=hour),
                    kwh=1.5,
                )
        for index in range(runs):
            run = self.run(site, capex_net=100000 + index, pv_size_kw=200.0)
            design = self.store.create(Design, simulation_run_id=run.id, design_name=f"Design {index}")
            self.store.create(BomItem, design_id=design.id, category="module", description="550W panel", quantity=360)
            self.store.create(BomItem, design_id=design.id, category="inverter", description="100kW string", quantity=2)
        visit = None
        for _ in range(visits):
            visit = self.store.create(SiteVisit, site_id=site.id, visited_by="Field tech")
        self.store.create(
            DesignAgreement,
            site_id=site.id,
            site_visit_id=visit.id if visit else None,
            total_cad=Decimal("2500.00"),
        )
        return site

    def kpi_scenario(self):
        """Portfolio with site A (run 100000 / 200) and site B (override 50000, run 80000 / 150)."""
        client = self.client()
        site_a = self.site(client, name="Site A")
        site_b = self.site(client, name="Site B")
        self.run(site_a, capex_net=100000, pv_size_kw=200.0)
        self.run(site_b, capex_net=80000, pv_size_kw=150.0)
        portfolio = self.portfolio(client)
        self.store.add_site_to_portfolio(portfolio.id, site_a.id, display_order=1)
        self.store.add_site_to_portfolio(
            portfolio.id, site_b.id, display_order=2, override_capex_net=Decimal("50000")
        )
        return client, portfolio, site_a, site_b


@pytest.fixture
def seed(store):
    return Seeder(store)
