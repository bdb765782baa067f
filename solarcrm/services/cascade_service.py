"""Orphan-free deletion of entity graphs.

Each root type declares its dependents as a ``Dependent`` tree. ``_purge``
walks a tree for a set of parent ids, removing grandchildren before
children on every branch, and every public cascade runs inside a single
unit of work so it either fully applies or leaves the store untouched.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any

from solarcrm.core.exceptions import ConflictError, NotFoundError
from solarcrm.models import (
    Activity,
    BomItem,
    Client,
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
from solarcrm.schemas.cascade import ClientCascadeCounts, SiteCascadeCounts
from solarcrm.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependent:
    """Rows of ``model`` whose ``foreign_key`` points at a parent being removed.

    ``children`` are purged first, keyed by this model's ids. With
    ``detach=True`` the foreign key is nulled and the rows survive.
    """

    model: Any
    foreign_key: str
    children: tuple["Dependent", ...] = ()
    detach: bool = False


OM_CONTRACT_CHILDREN = (
    Dependent(OmVisit, "om_contract_id"),
    Dependent(OmPerformanceSnapshot, "om_contract_id"),
)
CONSTRUCTION_AGREEMENT_CHILDREN = (Dependent(ConstructionMilestone, "construction_agreement_id"),)

SITE_PLAN = (
    Dependent(Activity, "site_id"),
    Dependent(Opportunity, "site_id", detach=True),
    Dependent(OmContract, "site_id", children=OM_CONTRACT_CHILDREN),
    Dependent(ConstructionProject, "site_id"),
    Dependent(ConstructionAgreement, "site_id", children=CONSTRUCTION_AGREEMENT_CHILDREN),
    # Design agreements reference site visits, so they go first.
    Dependent(DesignAgreement, "site_id"),
    Dependent(SiteVisit, "site_id"),
    Dependent(
        SimulationRun,
        "site_id",
        children=(Dependent(Design, "simulation_run_id", children=(Dependent(BomItem, "design_id"),)),),
    ),
    Dependent(MeterFile, "site_id", children=(Dependent(MeterReading, "meter_file_id"),)),
    Dependent(PortfolioSite, "site_id"),
)

PORTFOLIO_PLAN = (
    Dependent(PortfolioSite, "portfolio_id"),
    Dependent(Opportunity, "portfolio_id", detach=True),
)

# Client-owned rows that never block a client delete.
CLIENT_LOOSE_PLAN = (
    Dependent(Activity, "client_id"),
    Dependent(OmContract, "client_id", children=OM_CONTRACT_CHILDREN),
)

CLIENT_PLAN = CLIENT_LOOSE_PLAN + (
    Dependent(Opportunity, "client_id", children=(Dependent(Activity, "opportunity_id"),)),
)


class _CascadeAborted(Exception):
    """A sub-deletion reported nothing removed; unwinds the unit of work."""


class CascadeService:
    """Deletes sites, portfolios, contracts and clients without leaving orphans."""

    def __init__(self, store: EntityStore | None = None) -> None:
        self.store = store or EntityStore()

    # ------------------------------------------------------------------
    # Plan execution
    # ------------------------------------------------------------------

    def _purge(self, dependents: tuple[Dependent, ...], parent_ids: list[str], counts: Counter) -> None:
        if not parent_ids:
            return
        for dependent in dependents:
            table = dependent.model.__tablename__
            if dependent.detach:
                counts[f"{table}_detached"] += self.store.detach_where(
                    dependent.model, dependent.foreign_key, parent_ids
                )
                continue

            ids = self.store.ids_where(dependent.model, dependent.foreign_key, parent_ids)
            if dependent.children:
                self._purge(dependent.children, ids, counts)
            counts[table] += self.store.delete_where(dependent.model, "id", ids)

    def _delete_root(self, model: Any, entity_id: str, plan: tuple[Dependent, ...], counts: Counter) -> bool:
        self._purge(plan, [entity_id], counts)
        removed = self.store.delete(model, entity_id)
        if removed:
            counts[model.__tablename__] += 1
        return removed

    def _log_deleted(self, root: str, entity_id: str, counts: Counter) -> None:
        event = f"cascade.{root}.deleted"
        logger.info(
            event,
            extra={
                "event": event,
                f"{root}_id": entity_id,
                "counts": {table: total for table, total in counts.items() if total},
            },
        )

    def _run(self, root: str, model: Any, entity_id: str, plan: tuple[Dependent, ...]) -> bool:
        counts: Counter = Counter()
        with self.store.unit_of_work():
            removed = self._delete_root(model, entity_id, plan, counts)
        self._log_deleted(root, entity_id, counts)
        return removed

    # ------------------------------------------------------------------
    # Public cascades
    # ------------------------------------------------------------------

    def delete_site(self, site_id: str) -> bool:
        """Remove a site and everything hanging off it.

        Opportunities pointing at the site are kept with ``site_id`` cleared.
        Returns ``False`` when the site does not exist.
        """
        if self.store.get_site(site_id) is None:
            return False
        return self._run("site", Site, site_id, SITE_PLAN)

    def delete_construction_agreement(self, agreement_id: str) -> bool:
        if self.store.get(ConstructionAgreement, agreement_id) is None:
            return False
        return self._run(
            "construction_agreement", ConstructionAgreement, agreement_id, CONSTRUCTION_AGREEMENT_CHILDREN
        )

    def delete_om_contract(self, contract_id: str) -> bool:
        if self.store.get(OmContract, contract_id) is None:
            return False
        return self._run("om_contract", OmContract, contract_id, OM_CONTRACT_CHILDREN)

    def delete_portfolio(self, portfolio_id: str) -> bool:
        """Remove a portfolio; member sites survive, linked opportunities are unlinked."""
        if self.store.get_portfolio(portfolio_id) is None:
            return False
        return self._run("portfolio", Portfolio, portfolio_id, PORTFOLIO_PLAN)

    def delete_client(self, client_id: str) -> bool:
        """Delete a client that has no sites, portfolios or opportunities.

        Raises ``ConflictError`` carrying the ``ClientCascadeCounts`` when any
        of those exist, archived sites included.
        """
        if self.store.get_client(client_id) is None:
            return False

        counts = self.get_client_cascade_counts(client_id)
        if counts.blocking_total:
            logger.info(
                "cascade.client.blocked",
                extra={"event": "cascade.client.blocked", "client_id": client_id, "counts": counts.model_dump()},
            )
            raise ConflictError(
                f"Client {client_id} has {counts.sites} site(s), {counts.portfolios} portfolio(s) "
                f"and {counts.opportunities} opportunity(ies); use cascade_delete_client.",
                counts=counts,
            )
        return self._run("client", Client, client_id, CLIENT_LOOSE_PLAN)

    def cascade_delete_client(self, client_id: str) -> bool:
        """Delete a client and its whole graph, or nothing at all.

        Returns ``False`` (with every change rolled back) if the client is
        missing or any nested deletion removes nothing.
        """
        if self.store.get_client(client_id) is None:
            return False

        counts: Counter = Counter()
        sites = self.store.get_sites_by_client(client_id)
        portfolios = self.store.get_portfolios_by_client(client_id)
        try:
            with self.store.unit_of_work():
                for site in sites:
                    if not self._delete_root(Site, site.id, SITE_PLAN, counts):
                        raise _CascadeAborted(f"site {site.id}")
                for portfolio in portfolios:
                    if not self._delete_root(Portfolio, portfolio.id, PORTFOLIO_PLAN, counts):
                        raise _CascadeAborted(f"portfolio {portfolio.id}")
                if not self._delete_root(Client, client_id, CLIENT_PLAN, counts):
                    raise _CascadeAborted(f"client {client_id}")
        except _CascadeAborted as exc:
            logger.warning(
                "cascade.client.aborted",
                extra={"event": "cascade.client.aborted", "client_id": client_id, "failed": str(exc)},
            )
            return False

        self._log_deleted("client", client_id, counts)
        return True

    # ------------------------------------------------------------------
    # Pre-flight counts
    # ------------------------------------------------------------------

    def get_client_cascade_counts(self, client_id: str) -> ClientCascadeCounts:
        if self.store.get_client(client_id) is None:
            raise NotFoundError(f"Client {client_id} not found.")

        store = self.store
        site_ids = store.ids_where(Site, "client_id", [client_id])
        return ClientCascadeCounts(
            sites=len(site_ids),
            portfolios=store.count_where(Portfolio, "client_id", [client_id]),
            opportunities=store.count_where(Opportunity, "client_id", [client_id]),
            simulations=store.count_where(SimulationRun, "site_id", site_ids),
            design_agreements=store.count_where(DesignAgreement, "site_id", site_ids),
            site_visits=store.count_where(SiteVisit, "site_id", site_ids),
            meter_files=store.count_where(MeterFile, "site_id", site_ids),
        )

    def get_site_cascade_counts(self, site_id: str) -> SiteCascadeCounts:
        if self.store.get_site(site_id) is None:
            raise NotFoundError(f"Site {site_id} not found.")

        site_ids = [site_id]
        return SiteCascadeCounts(
            simulations=self.store.count_where(SimulationRun, "site_id", site_ids),
            meter_files=self.store.count_where(MeterFile, "site_id", site_ids),
            design_agreements=self.store.count_where(DesignAgreement, "site_id", site_ids),
            site_visits=self.store.count_where(SiteVisit, "site_id", site_ids),
        )
