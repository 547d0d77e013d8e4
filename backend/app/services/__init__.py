# Services package init
"""
PlantLog Backend — Services Layer
===================================

What:  Business rules between routes (HTTP) and the database (persistence).
How:   Services take an AsyncSession plus validated schema objects, apply the
       rules, and return response models. Module-level singletons are
       imported by the routes.

Service Inventory:
    - LocationService: sampling location CRUD, coordinate validation
    - ResearcherService: researcher CRUD, own-profile (/me) flows
    - SampleService: single and batch sample writes, implicit locations,
      environmental reading replacement
    - DashboardService: headline counts, recent samples, region buckets,
      monthly environmental trends
    - ReportsService: time-filtered sample and reading analytics
    - GeocodingService: reverse geocoding over HTTP
    - IdentityService: identity-provider account deletion over HTTP
"""
