"""
PlantLog Backend — API Routes Package
=======================================

Route Inventory:
    - locations.py:    /api/locations, /api/locations/{id}
    - researchers.py:  /api/researchers, /api/researchers/me, /api/researchers/{id}
    - samples.py:      /api/samples, /api/samples/{id}
    - analytics.py:    /api/dashboard/stats, /api/reports/analytics
    - health.py:       /health

Routes stay thin: parse the request, resolve the session context, call a
service, pick the status code. Business rules live in app/services.
"""
