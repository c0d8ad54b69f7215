"""
Domain-specific exceptions for labelstore.

Storage failures are not wrapped: SQLAlchemy and driver exceptions reach
the caller unchanged.
"""

from typing import Any


class LabelStoreError(Exception):
    """Base exception for all labelstore domain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(LabelStoreError):
    """
    Raised when input data fails validation.

    Examples:
    - Label name empty or longer than 255 characters
    - Unvalidated NewLabel handed to the repository

    Always raised before any store interaction.
    """

    pass


class MigrationError(LabelStoreError):
    """
    Raised when the migration set cannot be applied safely.

    Examples:
    - Migration file name without a version prefix
    - Two files sharing the same version
    - Applied migration whose file changed or disappeared
    """

    pass
