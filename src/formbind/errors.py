"""
Error types for formbind.
"""

from typing import Dict, List


class ValidationError(ValueError):
    """A user-facing validation failure for a field, validator, or hook."""


class ScanError(ValueError):
    """A bound value could not be converted to the requested type."""


class UploadTooLarge(ValueError):
    """A request body or uploaded file exceeds the configured size limit."""


class FormError:
    """An error attached to a field name."""

    def __init__(self, name: str, error: Exception):
        self.name = name
        self.error = error

    def __str__(self) -> str:
        return str(self.error)

    def __repr__(self) -> str:
        return f'FormError({self.name!r}, {str(self.error)!r})'

    def __eq__(self, other) -> bool:
        if not isinstance(other, FormError):
            return NotImplemented
        return self.name == other.name and str(self.error) == str(other.error)


class FormErrors(list):
    """Ordered collection of FormError."""

    def for_field(self, name: str) -> 'FormErrors':
        """Return the errors recorded under ``name``."""
        return FormErrors(e for e in self if e.name == name)

    def messages(self) -> List[str]:
        return [str(e) for e in self]

    def as_dict(self) -> Dict[str, List[str]]:
        """Group error messages by field name, preserving order."""
        grouped: Dict[str, List[str]] = {}
        for e in self:
            grouped.setdefault(e.name, []).append(str(e))
        return grouped
