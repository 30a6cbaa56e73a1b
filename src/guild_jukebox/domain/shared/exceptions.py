"""Base exception classes for domain-level errors."""

from __future__ import annotations

from enum import Enum


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ResolutionErrorKind(Enum):
    NOT_FOUND = "not_found"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    INVALID_REFERENCE = "invalid_reference"


class SessionErrorKind(Enum):
    CHANNEL_CONFLICT = "channel_conflict"
    NO_ACTIVE_SESSION = "no_active_session"
    CONNECT_FAILED = "connect_failed"


class ValidationErrorKind(Enum):
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    VOLUME_OUT_OF_RANGE = "volume_out_of_range"
    QUEUE_FULL = "queue_full"


class ResolutionError(DomainError):
    """Raised when a query cannot be turned into a playable track."""

    def __init__(self, kind: ResolutionErrorKind, message: str) -> None:
        super().__init__(message, code="RESOLUTION_ERROR")
        self.kind = kind

    @classmethod
    def not_found(cls, message: str) -> ResolutionError:
        return cls(ResolutionErrorKind.NOT_FOUND, message)

    @classmethod
    def provider_unavailable(cls, message: str) -> ResolutionError:
        return cls(ResolutionErrorKind.PROVIDER_UNAVAILABLE, message)

    @classmethod
    def invalid_reference(cls, message: str) -> ResolutionError:
        return cls(ResolutionErrorKind.INVALID_REFERENCE, message)


class SessionError(DomainError):
    """Raised when a guild session operation cannot be honoured."""

    def __init__(self, kind: SessionErrorKind, guild_id: int, message: str) -> None:
        super().__init__(message, code="SESSION_ERROR")
        self.kind = kind
        self.guild_id = guild_id


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    def __init__(
        self, kind: ValidationErrorKind, message: str, field: str | None = None
    ) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.kind = kind
        self.field = field


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state
