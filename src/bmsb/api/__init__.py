"""Read-only JSON API over stored BMSB calculations."""

from bmsb.api.app import create_app, database_lifespan

__all__ = ["create_app", "database_lifespan"]
