"""Domain errors.

All of them derive from ValueError so callers that only care about
"rejected input" can keep catching that.
"""


class DomainError(ValueError):
    """Base class for every error raised by the domain/application layers."""


class ValidationError(DomainError):
    """A required field is missing or invalid."""


class InvalidStateError(DomainError):
    """Illegal lifecycle transition or mutation of a frozen record."""


class RecordNotFoundError(DomainError, LookupError):
    """No stored record matches the given identifier."""

    def __init__(self, kind: str, record_id) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")
