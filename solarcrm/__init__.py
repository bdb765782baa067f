"""solarcrm: relational consistency and KPI engine for a commercial solar CRM."""

__version__ = "1.0.0"
