"""
3sConnect Backend — Package Initializer
=======================================

What: The social feed API (posts, likes, comments, follows, notifications)
      and its Python client with a query cache.
Who:  Imported by uvicorn (`threesconnect.main:app`), Alembic, pytest and
      client applications (`threesconnect.client`).

Architecture Note:

    ┌─────────────────────────────────────┐
    │   Routes (API Layer) + auth deps    │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Interaction Operations) │  ← Validation, cascades, fan-out
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Persistence)            │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    External collaborators (identity provider, media storage) are injected
    into the app factory and handed to services per call.
"""

__version__ = "1.0.0"
