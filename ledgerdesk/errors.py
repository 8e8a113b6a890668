"""
Error Taxonomy Module

Typed exceptions raised by the credential store, reservation ledger and
account ledger. Validation and domain errors are raised before any state
changes, so callers can recover and re-prompt.
"""


class LedgerDeskError(Exception):
    """Base class for all LedgerDesk errors"""
    pass


class ValidationError(LedgerDeskError, ValueError):
    """Empty or invalid input"""
    pass


class AlreadyExistsError(LedgerDeskError):
    """Key already present in a store"""
    pass


class AuthenticationError(LedgerDeskError):
    """Credentials did not match. Carries no detail on which part failed."""
    
    def __init__(self, message: str = "Login failed. Check credentials."):
        super().__init__(message)


class NotFoundError(LedgerDeskError, LookupError):
    """Unknown key"""
    pass


class ForbiddenError(LedgerDeskError, PermissionError):
    """Ownership violation"""
    pass


class InsufficientFundsError(LedgerDeskError):
    """Debit larger than the available balance"""
    pass


class StorageError(LedgerDeskError, IOError):
    """Persistence layer failure"""
    pass
