"""
Storage — SQLAlchemy implementation of the persistence gateway.

Public API::

    from visualization_api.services.storage import SQLAlchemyPersistenceGateway
"""

from visualization_api.services.storage.sql_gateway import SQLAlchemyPersistenceGateway

__all__ = ["SQLAlchemyPersistenceGateway"]
