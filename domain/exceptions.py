"""Domain Exceptions"""


class DomainError(Exception):
    """Base class for business errors surfaced to API callers"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError, ValueError):
    """Malformed input or a broken business rule the caller can fix"""


class NotFoundError(DomainError):
    """Referenced entity does not exist"""


class ConflictError(DomainError):
    """Availability check failed"""


class InvalidTransitionError(ConflictError):
    """Requested status change is not allowed from the current state"""


class PersistenceError(DomainError):
    """Underlying storage failed"""


class AuthenticationError(DomainError):
    """Credentials were not accepted"""


class InactiveAccountError(DomainError):
    """Account exists but has been deactivated"""
