"""
PlantLog Backend — Application Package
========================================

Layers:
    ┌─────────────────────────────────────┐
    │   Routes (HTTP, session context)    │  app/routes, app/auth.py
    ├─────────────────────────────────────┤
    │   Services (rules, transactions)    │  app/services
    ├─────────────────────────────────────┤
    │   Shapers & Geometry (pure)         │  app/shapers.py, app/geometry.py
    ├─────────────────────────────────────┤
    │   Models & Schemas                  │  app/models, app/schemas
    ├─────────────────────────────────────┤
    │   Database (async sessions)         │  app/database.py
    └─────────────────────────────────────┘

app/client holds the HTTP client-side state containers and the coordinate
picker model used by the front end and by scripts.
"""

__version__ = "1.0.0"
