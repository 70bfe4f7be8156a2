"""
isupipe - Error taxonomy

Every layer propagates these unchanged. The unit of work is the only place
that turns a failure into a rollback; the HTTP boundary is the only place
that turns an error into a status code.
"""


class IsupipeError(Exception):
    """Base class for all isupipe errors."""


class ValidationError(IsupipeError):
    """Malformed client input (path ids, limit, request body)."""


class AuthError(IsupipeError):
    """Missing, unknown or expired session."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class StoreError(IsupipeError):
    """Connection, query or constraint failure in the transactional store."""


class FactQueryError(StoreError):
    """The reaction listing query itself failed."""


class UnitOfWorkCancelled(StoreError):
    """The request was cancelled or ran past its deadline."""
