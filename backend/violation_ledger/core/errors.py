"""Error taxonomy shared by the lifecycle engine and the storage adapters."""


class LedgerError(Exception):
    """Base exception for ViolationLedger errors."""
    pass


class NotAuthenticatedError(LedgerError):
    """Raised when a write requiring an identified actor has none."""
    pass


class NotFoundError(LedgerError):
    """Raised when a by-id write targets an entity that does not exist."""
    pass


class BackendUnavailableError(LedgerError):
    """Raised when the storage or subscription transport fails."""
    pass


class ValidationError(LedgerError):
    """Raised when required fields are missing or a value is not recognised."""
    pass


class InvalidTransitionError(ValidationError):
    """Raised when transition enforcement is on and a status jump is not allowed."""
    pass
