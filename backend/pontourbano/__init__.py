"""
Ponto Urbano Backend — Application Package
============================================

What: Municipal issue-reporting API. Citizens register, log in and pin
      "problemas" (potholes, broken lights, garbage...) on a map.
Who:  Imported by uvicorn (`pontourbano.main:app`), pytest and `python -m pontourbano`.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Dependencies (auth guard, DI)     │  ← pulls services off app.state
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← users, reports, sessions, uploads
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database / Blob Storage (I/O)     │  ← async SQLAlchemy, disk or Cloudinary
    └─────────────────────────────────────┘

    Nothing below the routes is a module-level singleton: create_app() builds a
    ServiceContainer and every request reaches it through request.app.state.
"""

__version__ = "1.0.0"
