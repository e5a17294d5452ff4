"""
Domain errors raised by the service layer.

Store failures (``sqlalchemy.exc.SQLAlchemyError``) are not wrapped; they
propagate to the caller untouched.
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class NotFoundError(DomainError):
    """A referenced post or category does not exist."""

    def __init__(self, entity: str, key) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key!r}")


class ValidationFailure(DomainError):
    """Input that passed schema validation but cannot be persisted."""
