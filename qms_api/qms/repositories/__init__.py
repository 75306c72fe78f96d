"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. Services own the
transaction boundary and commit once a workflow step is complete.
"""
