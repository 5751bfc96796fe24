"""
DentalHub Backend: Application Package
======================================

What: Backend API for the DentalHub case collaboration and forum platform.
Who:  Imported by uvicorn (``dentalhub.main:app``), Alembic and pytest.

Architecture Note:
    The package follows a layered layout:

    ┌─────────────────────────────────────┐
    │        Routes (RPC procedures)      │  ← input validation, serialization
    ├─────────────────────────────────────┤
    │       Services (domain handlers)    │  ← queries, permissions, counters
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch the ORM directly; services never know about HTTP.
"""

__version__ = "1.0.0"
