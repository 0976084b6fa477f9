"""Infrastructure layer — database engine, record repository, entity store.

This layer depends on stdlib, SQLAlchemy, and the domain models.
It must never import from services, commands, or output.
The service layer bridges between domain rules and infrastructure.
"""
