"""Data access managers for the CMDB service.

Each module provides async functions that encapsulate CRUD operations
and business logic.  Managers accept ``AsyncSession`` as a parameter
and raise domain exceptions from ``infragraph.cmdb.errors``, never
HTTP exceptions -- that translation is the router's responsibility.

Multi-statement mutations run inside :func:`tx.atomic` so that they are
either applied completely or not at all.
"""
