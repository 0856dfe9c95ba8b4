"""
Code Library Backend — Application Package Initializer
=======================================================

What: Marks the `codelibrary` directory as a Python package.
Who:  Imported by uvicorn, Alembic and pytest.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Snippet Repository,   │  ← ids, defaults, merge rules
    │       Identity Provider client)     │
    ├─────────────────────────────────────┤
    │        Schemas (Pydantic)           │  ← wire contract
    ├─────────────────────────────────────┤
    │     Storage (Key-Value adapters)    │  ← in-memory / SQL
    └─────────────────────────────────────┘

    Each layer only talks to the one directly below it, so the repository can be
    exercised without HTTP and the routes can be exercised with an in-memory store.
"""

__version__ = "1.0.0"
