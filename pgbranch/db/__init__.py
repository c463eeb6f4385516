"""
db/ - Database Layer
====================
PostgreSQL connections and password resolution.
This layer is the lowest in the architecture and has no dependencies on
other layers besides the configuration models.
"""
