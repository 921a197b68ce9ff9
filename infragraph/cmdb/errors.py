"""Domain exceptions raised by the managers.

Routers translate these into HTTP status codes; managers never raise
HTTP exceptions themselves.  Each class also derives from the closest
builtin so callers can catch ``LookupError`` / ``ValueError`` generically.
"""

from __future__ import annotations


class CMDBError(Exception):
    """Base class for all CMDB domain errors."""


class ValidationError(CMDBError, ValueError):
    """A required field is missing or malformed.  Raised before touching the store."""


class NotFoundError(CMDBError, LookupError):
    """The target of an operation does not exist (in the given workspace)."""


class InvalidStateError(CMDBError, ValueError):
    """The target exists but is in a state that forbids the operation."""


class ConflictError(CMDBError, ValueError):
    """A uniqueness rule would be violated."""


class TransactionError(CMDBError, RuntimeError):
    """The store failed mid-transaction.  The transaction was rolled back."""
