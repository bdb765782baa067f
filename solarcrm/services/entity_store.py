"""SQLAlchemy-backed entity store consumed by the cascade, KPI and pipeline services."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from solarcrm.core.exceptions import ConflictError
from solarcrm.models import (
    Client,
    Opportunity,
    Portfolio,
    PortfolioSite,
    SimulationRun,
    Site,
    utcnow,
)
from solarcrm.models.base import Base
from solarcrm.schemas.qualification import normalize_qualification
from solarcrm.services.base_service import BaseService

ModelT = TypeVar("ModelT", bound=Base)


def _unique(values: Iterable[str | None]) -> list[str]:
    """Drop NULLs and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(value for value in values if value is not None))


def _checked(model: type, values: dict[str, Any]) -> dict[str, Any]:
    """Validate JSON sub-documents before they reach storage."""
    if model is Opportunity and "qualification" in values:
        return {**values, "qualification": normalize_qualification(values["qualification"])}
    return values


class EntityStore(BaseService):
    """Keyed access to every record type, plus batched and bulk helpers.

    Single-row reads return ``None`` for a missing id and ``update`` does the
    same; ``delete`` reports whether a row was removed.
    """

    def __init__(self, db: Session | None = None) -> None:
        super().__init__(db=db)

    # ------------------------------------------------------------------
    # Generic access
    # ------------------------------------------------------------------

    def get(self, model: type[ModelT], entity_id: str) -> ModelT | None:
        return self.db.query(model).filter(model.id == entity_id).first()

    def get_many(self, model: type[ModelT], ids: Iterable[str | None]) -> list[ModelT]:
        wanted = _unique(ids)
        if not wanted:
            return []
        return self.db.query(model).filter(model.id.in_(wanted)).all()

    def create(self, model: type[ModelT], **values: Any) -> ModelT:
        entity = model(**_checked(model, values))
        self.db.add(entity)
        self.commit()
        self.db.refresh(entity)
        return entity

    def update(self, model: type[ModelT], entity_id: str, **values: Any) -> ModelT | None:
        """Partial update: only supplied fields change, ``updated_at`` is refreshed."""
        values = _checked(model, values)
        entity = self.get(model, entity_id)
        if entity is None:
            return None

        for field, value in values.items():
            setattr(entity, field, value)
        if hasattr(model, "updated_at") and "updated_at" not in values:
            entity.updated_at = utcnow()
        self.commit()
        self.db.refresh(entity)
        return entity

    def delete(self, model: type[ModelT], entity_id: str) -> bool:
        removed = (
            self.db.query(model)
            .filter(model.id == entity_id)
            .delete(synchronize_session="fetch")
        )
        self.commit()
        return removed > 0

    # ------------------------------------------------------------------
    # Bulk helpers keyed by a foreign-key column
    # ------------------------------------------------------------------

    def ids_where(self, model: type[ModelT], column: str, values: Sequence[str]) -> list[str]:
        if not values:
            return []
        rows = self.db.query(model.id).filter(getattr(model, column).in_(values)).all()
        return [row[0] for row in rows]

    def count_where(self, model: type[ModelT], column: str, values: Sequence[str]) -> int:
        if not values:
            return 0
        return (
            self.db.query(func.count(model.id))
            .filter(getattr(model, column).in_(values))
            .scalar()
            or 0
        )

    def delete_where(self, model: type[ModelT], column: str, values: Sequence[str]) -> int:
        if not values:
            return 0
        removed = (
            self.db.query(model)
            .filter(getattr(model, column).in_(values))
            .delete(synchronize_session="fetch")
        )
        self.commit()
        return removed

    def detach_where(self, model: type[ModelT], column: str, values: Sequence[str]) -> int:
        """Null out a foreign key instead of deleting the referencing rows.

        ``updated_at`` keeps its current value.
        """
        if not values:
            return 0
        assignments: dict[Any, Any] = {getattr(model, column): None}
        if hasattr(model, "updated_at"):
            assignments[model.updated_at] = model.updated_at
        changed = (
            self.db.query(model)
            .filter(getattr(model, column).in_(values))
            .update(assignments, synchronize_session="fetch")
        )
        self.commit()
        return changed

    # ------------------------------------------------------------------
    # Clients and sites
    # ------------------------------------------------------------------

    def get_client(self, client_id: str) -> Client | None:
        return self.get(Client, client_id)

    def get_clients_by_ids(self, ids: Iterable[str | None]) -> list[Client]:
        return self.get_many(Client, ids)

    def get_site(self, site_id: str) -> Site | None:
        return self.get(Site, site_id)

    def get_sites(self, include_archived: bool = True) -> list[Site]:
        query = self.db.query(Site)
        if not include_archived:
            query = query.filter(Site.is_archived.is_(False))
        return query.order_by(Site.created_at.desc()).all()

    def get_sites_by_ids(self, ids: Iterable[str | None]) -> list[Site]:
        return self.get_many(Site, ids)

    def get_sites_by_client(self, client_id: str) -> list[Site]:
        return self.db.query(Site).filter(Site.client_id == client_id).all()

    # ------------------------------------------------------------------
    # Portfolios
    # ------------------------------------------------------------------

    def get_portfolio(self, portfolio_id: str) -> Portfolio | None:
        return self.get(Portfolio, portfolio_id)

    def get_portfolios_by_client(self, client_id: str) -> list[Portfolio]:
        return (
            self.db.query(Portfolio)
            .filter(Portfolio.client_id == client_id)
            .order_by(Portfolio.created_at.desc())
            .all()
        )

    def get_portfolio_sites(self, portfolio_id: str) -> list[PortfolioSite]:
        return self.get_portfolio_sites_for([portfolio_id])

    def get_portfolio_sites_for(self, portfolio_ids: Iterable[str | None]) -> list[PortfolioSite]:
        """Join rows for several portfolios in one round-trip, in display order."""
        wanted = _unique(portfolio_ids)
        if not wanted:
            return []
        return (
            self.db.query(PortfolioSite)
            .filter(PortfolioSite.portfolio_id.in_(wanted))
            .order_by(PortfolioSite.display_order, PortfolioSite.id)
            .all()
        )

    def add_site_to_portfolio(self, portfolio_id: str, site_id: str, **values: Any) -> PortfolioSite:
        existing = (
            self.db.query(PortfolioSite)
            .filter(PortfolioSite.portfolio_id == portfolio_id, PortfolioSite.site_id == site_id)
            .first()
        )
        if existing is not None:
            raise ConflictError(f"Site {site_id} is already in portfolio {portfolio_id}.")
        return self.create(PortfolioSite, portfolio_id=portfolio_id, site_id=site_id, **values)

    def remove_site_from_portfolio(self, portfolio_id: str, site_id: str) -> bool:
        removed = (
            self.db.query(PortfolioSite)
            .filter(PortfolioSite.portfolio_id == portfolio_id, PortfolioSite.site_id == site_id)
            .delete(synchronize_session="fetch")
        )
        self.commit()
        return removed > 0

    def update_portfolio_site(self, portfolio_site_id: str, **values: Any) -> PortfolioSite | None:
        return self.update(PortfolioSite, portfolio_site_id, **values)

    # ------------------------------------------------------------------
    # Simulation runs
    # ------------------------------------------------------------------

    def get_simulation_runs_by_site(self, site_id: str) -> list[SimulationRun]:
        return self.get_simulation_runs_by_site_ids([site_id])

    def get_simulation_runs_by_site_ids(self, site_ids: Iterable[str | None]) -> list[SimulationRun]:
        wanted = _unique(site_ids)
        if not wanted:
            return []
        return (
            self.db.query(SimulationRun)
            .filter(SimulationRun.site_id.in_(wanted))
            .order_by(SimulationRun.created_at.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # Opportunities
    # ------------------------------------------------------------------

    def get_opportunity_rows(self, **filters: Any) -> list[Opportunity]:
        """Raw stored rows, newest first. Readers should use ``OpportunityService``."""
        return (
            self.db.query(Opportunity)
            .filter_by(**filters)
            .order_by(Opportunity.created_at.desc())
            .all()
        )
