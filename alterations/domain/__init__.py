"""
Domain Layer

Business rules for alteration scheduling: the shop calendar, daily capacity,
staff assignment and the garment lifecycle driven by QR scans. Persistence is
reached only through the repositories handed to each service.

Components:
- scheduling/: scheduling services, value objects and domain events
- shared/: error taxonomy shared by every layer
"""
