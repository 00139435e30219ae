"""
NoteCraft Backend: Application Package
========================================

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (pipeline, renderer,     │  ← ingestion, extraction, notes
    │   storage, extraction, notes)       │
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← dataclasses, ORM, Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
