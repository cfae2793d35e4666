"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Write rejected: malformed input or a reference to a record that does not exist"""

    pass


class NotFoundError(DomainException):
    """Requested record does not exist"""

    pass


class PreconditionError(DomainException):
    """Target entity lacks a capability the operation requires"""

    pass


class ConsistencyError(DomainException):
    """
    Stored links disagree with each other.

    Raised when a schedule's linked entries point at a different schedule or
    obligation. Never produced by writes that go through the service.
    """

    pass
