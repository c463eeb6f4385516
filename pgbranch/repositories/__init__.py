"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all reads and writes for one source of data:
the base config file, the local overlay file, the environment, the local
state file and the PostgreSQL server. Repositories turn raw data into
domain model objects.
"""
