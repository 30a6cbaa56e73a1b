"""Shared domain building blocks."""

from guild_jukebox.domain.shared.exceptions import (
    DomainError,
    InvalidOperationError,
    ResolutionError,
    ResolutionErrorKind,
    SessionError,
    SessionErrorKind,
    ValidationError,
    ValidationErrorKind,
)

__all__ = [
    "DomainError",
    "InvalidOperationError",
    "ResolutionError",
    "ResolutionErrorKind",
    "SessionError",
    "SessionErrorKind",
    "ValidationError",
    "ValidationErrorKind",
]
