from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from solarcrm.core.exceptions import ConflictError, NotFoundError
from solarcrm.models import (
    Activity,
    BomItem,
    ConstructionAgreement,
    ConstructionMilestone,
    ConstructionProject,
    Design,
    DesignAgreement,
    MeterFile,
    MeterReading,
    OmContract,
    OmPerformanceSnapshot,
    OmVisit,
    Opportunity,
    Portfolio,
    PortfolioSite,
    SimulationRun,
    Site,
    SiteVisit,
)
from solarcrm.services.cascade_service import CascadeService
from solarcrm.services.pipeline_stats_service import PipelineStatsService

SITE_CHILD_MODELS = (
    MeterReading,
    MeterFile,
    BomItem,
    Design,
    SimulationRun,
    SiteVisit,
    DesignAgreement,
)


def _row_count(session, model) -> int:
    return session.query(model).count()


def test_delete_site_leaves_no_orphans(session, store, seed):
    client = seed.client()
    site = seed.full_site(client, meter_files=2, runs=3, visits=2)
    other = seed.full_site(client, meter_files=1, runs=1, visits=1)
    before = {model: _row_count(session, model) for model in SITE_CHILD_MODELS}

    assert CascadeService(store).delete_site(site.id) is True

    assert store.get_site(site.id) is None
    assert store.get_site(other.id) is not None
    assert _row_count(session, MeterReading) == before[MeterReading] - 6
    assert _row_count(session, MeterFile) == 1
    assert _row_count(session, SimulationRun) == 1
    assert _row_count(session, Design) == 1
    assert _row_count(session, BomItem) == 2
    assert _row_count(session, SiteVisit) == 1
    assert _row_count(session, DesignAgreement) == 1


def test_delete_site_handles_delivery_records_and_links(session, store, seed):
    client = seed.client()
    site = seed.site(client)
    portfolio = seed.portfolio(client)
    store.add_site_to_portfolio(portfolio.id, site.id)
    opp = seed.opportunity(site_id=site.id, client_id=client.id)
    store.create(Activity, activity_type="call", site_id=site.id)
    contract = store.create(OmContract, client_id=client.id, site_id=site.id)
    store.create(OmVisit, om_contract_id=contract.id)
    store.create(OmPerformanceSnapshot, om_contract_id=contract.id, production_kwh=1000.0)
    agreement = store.create(ConstructionAgreement, site_id=site.id)
    store.create(ConstructionMilestone, construction_agreement_id=agreement.id, name="Deposit")
    store.create(ConstructionProject, site_id=site.id, name="Install")

    assert CascadeService(store).delete_site(site.id) is True

    for model in (Activity, OmContract, OmVisit, OmPerformanceSnapshot, ConstructionAgreement,
                  ConstructionMilestone, ConstructionProject, PortfolioSite):
        assert _row_count(session, model) == 0
    survivor = store.get(Opportunity, opp.id)
    assert survivor is not None
    assert survivor.site_id is None
    assert store.get_portfolio(portfolio.id) is not None


def test_delete_missing_site_returns_false(store):
    assert CascadeService(store).delete_site("missing") is False


def test_delete_site_rolls_back_when_a_step_fails(session, store, seed, monkeypatch):
    client = seed.client()
    site = seed.full_site(client)
    before = {model: _row_count(session, model) for model in SITE_CHILD_MODELS}
    original = store.delete_where

    def failing_delete_where(model, column, values):
        if model is MeterFile:
            raise RuntimeError("store unavailable")
        return original(model, column, values)

    monkeypatch.setattr(store, "delete_where", failing_delete_where)

    with pytest.raises(RuntimeError, match="store unavailable"):
        CascadeService(store).delete_site(site.id)

    assert store.get_site(site.id) is not None
    assert {model: _row_count(session, model) for model in SITE_CHILD_MODELS} == before


def test_delete_construction_agreement_and_om_contract(session, store, seed):
    client = seed.client()
    site = seed.site(client)
    agreement = store.create(ConstructionAgreement, site_id=site.id, contract_value=Decimal("250000"))
    store.create(ConstructionMilestone, construction_agreement_id=agreement.id, name="Deposit")
    store.create(ConstructionMilestone, construction_agreement_id=agreement.id, name="Commissioning")
    contract = store.create(OmContract, client_id=client.id, site_id=site.id)
    store.create(OmVisit, om_contract_id=contract.id)

    service = CascadeService(store)
    assert service.delete_construction_agreement(agreement.id) is True
    assert service.delete_om_contract(contract.id) is True
    assert service.delete_om_contract(contract.id) is False

    assert _row_count(session, ConstructionMilestone) == 0
    assert _row_count(session, OmVisit) == 0
    assert store.get_site(site.id) is not None


def test_delete_portfolio_keeps_sites_and_unlinks_opportunities(store, seed):
    client, portfolio, site_a, site_b = seed.kpi_scenario()
    opp = seed.opportunity(portfolio_id=portfolio.id, client_id=client.id)

    assert CascadeService(store).delete_portfolio(portfolio.id) is True

    assert store.get_portfolio(portfolio.id) is None
    assert store.get_site(site_a.id) is not None
    assert store.get_site(site_b.id) is not None
    assert store.get(Opportunity, opp.id).portfolio_id is None


def test_client_delete_blocked_by_sites(session, store, seed):
    client = seed.client()
    site = seed.full_site(client)
    before = {model: _row_count(session, model) for model in SITE_CHILD_MODELS}

    with pytest.raises(ConflictError) as excinfo:
        CascadeService(store).delete_client(client.id)

    counts = excinfo.value.counts
    assert counts.sites == 1
    assert counts.simulations == 2
    assert store.get_client(client.id) is not None
    assert store.get_site(site.id) is not None
    assert {model: _row_count(session, model) for model in SITE_CHILD_MODELS} == before


def test_client_delete_blocked_by_archived_site_or_opportunity(store, seed):
    archived_owner = seed.client("Archived owner")
    seed.site(archived_owner, is_archived=True)
    deal_owner = seed.client("Deal owner")
    seed.opportunity(client_id=deal_owner.id)

    service = CascadeService(store)
    with pytest.raises(ConflictError):
        service.delete_client(archived_owner.id)
    with pytest.raises(ConflictError):
        service.delete_client(deal_owner.id)


def test_client_without_dependents_is_deleted(store, seed):
    client = seed.client()
    store.create(Activity, activity_type="note", client_id=client.id)

    service = CascadeService(store)
    assert service.delete_client(client.id) is True
    assert service.delete_client(client.id) is False
    assert store.get_client(client.id) is None


def test_cascade_delete_client_removes_whole_graph(session, store, seed):
    client, portfolio, site_a, site_b = seed.kpi_scenario()
    seed.full_site(client)
    opp = seed.opportunity(client_id=client.id, portfolio_id=portfolio.id)
    store.create(Activity, activity_type="call", opportunity_id=opp.id)
    bystander = seed.client("Bystander")
    kept_site = seed.full_site(bystander)

    assert CascadeService(store).cascade_delete_client(client.id) is True

    assert store.get_client(client.id) is None
    assert store.get_sites_by_client(client.id) == []
    assert _row_count(session, Portfolio) == 0
    assert _row_count(session, PortfolioSite) == 0
    assert _row_count(session, Opportunity) == 0
    assert _row_count(session, Activity) == 0
    assert store.get_site(kept_site.id) is not None
    assert _row_count(session, SimulationRun) == 2


def test_cascade_delete_client_reports_failure_without_deleting(store, seed, monkeypatch):
    client, portfolio, site_a, site_b = seed.kpi_scenario()
    service = CascadeService(store)
    original = service._delete_root

    def refuse_portfolios(model, entity_id, plan, counts):
        if model is Portfolio:
            return False
        return original(model, entity_id, plan, counts)

    monkeypatch.setattr(service, "_delete_root", refuse_portfolios)

    assert service.cascade_delete_client(client.id) is False
    assert store.get_client(client.id) is not None
    assert store.get_site(site_a.id) is not None
    assert len(store.get_portfolio_sites(portfolio.id)) == 2


def test_cascade_delete_missing_client_returns_false(store):
    assert CascadeService(store).cascade_delete_client("missing") is False


def test_cascade_counts_are_read_only(store, seed):
    client = seed.client()
    site = seed.full_site(client, meter_files=3, runs=2, visits=1)
    seed.portfolio(client)
    seed.opportunity(client_id=client.id)
    service = CascadeService(store)

    counts = service.get_client_cascade_counts(client.id)
    site_counts = service.get_site_cascade_counts(site.id)

    assert counts.model_dump() == {
        "sites": 1,
        "portfolios": 1,
        "opportunities": 1,
        "simulations": 2,
        "design_agreements": 1,
        "site_visits": 1,
        "meter_files": 3,
    }
    assert site_counts.meter_files == 3
    assert site_counts.simulations == 2
    assert store.get_site(site.id) is not None


def test_cascade_counts_for_missing_client_raise(store):
    with pytest.raises(NotFoundError):
        CascadeService(store).get_client_cascade_counts("missing")


def test_cascade_logs_structured_event(store, seed, caplog):
    client = seed.client()
    site = seed.full_site(client, meter_files=1, runs=1, visits=1)

    with caplog.at_level(logging.INFO, logger="solarcrm.services.cascade_service"):
        CascadeService(store).delete_site(site.id)

    record = next(r for r in caplog.records if r.getMessage() == "cascade.site.deleted")
    assert record.event == "cascade.site.deleted"
    assert record.site_id == site.id
    assert record.counts["sites"] == 1
    assert record.counts["meter_readings"] == 3


def test_unlinking_opportunities_keeps_their_last_activity(store, seed):
    client, portfolio, site_a, _ = seed.kpi_scenario()
    stale_at = datetime(2026, 1, 1, 9, 0, 0)
    by_site = seed.opportunity(name="Site deal", stage="proposal", site_id=site_a.id)
    by_portfolio = seed.opportunity(name="Portfolio deal", stage="proposal", portfolio_id=portfolio.id)
    store.update(Opportunity, by_site.id, updated_at=stale_at)
    store.update(Opportunity, by_portfolio.id, updated_at=stale_at)
    stats = PipelineStatsService(store, at_risk_days=30, top_n=5)
    now = stale_at + timedelta(days=60)
    before = [item.name for item in stats.compute_pipeline_stats(now=now).at_risk_opportunities]

    service = CascadeService(store)
    assert service.delete_site(site_a.id) is True
    assert service.delete_portfolio(portfolio.id) is True

    after = [item.name for item in stats.compute_pipeline_stats(now=now).at_risk_opportunities]
    assert sorted(before) == ["Portfolio deal", "Site deal"]
    assert after == before
    for opp_id in (by_site.id, by_portfolio.id):
        row = store.get(Opportunity, opp_id)
        assert row.site_id is None
        assert row.portfolio_id is None
        assert row.updated_at == stale_at
