from __future__ import annotations


class AutomatonError(Exception):
    """Base error for machine construction and editing."""


class AutomatonValidationError(AutomatonError):
    """A symbol, state or machine description is malformed."""
