from flask import current_app

from payaso.state import DashboardLoader

from .base import DataService, ServiceSettings
from .memory import InMemoryDataService
from .sql import SqlDataService

BACKENDS = {
    InMemoryDataService.name: InMemoryDataService,
    SqlDataService.name: SqlDataService,
}


def init_service(app):
    """Build the configured data service and keep it on the app."""
    backend = app.config.get("DATA_BACKEND", "sql")
    if backend not in BACKENDS:
        raise RuntimeError(f"Unknown DATA_BACKEND {backend!r}, expected one of {', '.join(BACKENDS)}")
    service = BACKENDS[backend](ServiceSettings.from_config(app.config))
    app.extensions["payaso_service"] = service
    app.extensions["payaso_dashboard"] = DashboardLoader(service)
    app.logger.info("Using %s data backend", backend)
    return service


def get_service() -> DataService:
    return current_app.extensions["payaso_service"]


__all__ = [
    "DataService", "ServiceSettings", "InMemoryDataService", "SqlDataService",
    "init_service", "get_service",
]
