"""
Domain errors and their API rendering.

Validation errors are raised synchronously to the participant-facing caller.
Transfer-time failures are never raised; they are recorded on payout rows.
"""

from typing import Any, Optional


class AgoraError(Exception):
    """Base exception for domain errors surfaced to callers."""

    code = "agora_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EventNotFoundError(AgoraError):
    """Event does not exist."""

    code = "event_not_found"
    status_code = 404


class EventNotActiveError(AgoraError):
    """Action attempted on an event that is not accepting it."""

    code = "event_not_active"
    status_code = 409


class EventValidationError(AgoraError):
    """Event configuration is invalid."""

    code = "invalid_event"
    status_code = 422


class CapacityExceededError(AgoraError):
    """Entry rejected because the event is full."""

    code = "capacity_exceeded"
    status_code = 409


class DuplicateEntryError(AgoraError):
    """The user already holds an entry on this event."""

    code = "already_entered"
    status_code = 409


class EntryNotFoundError(AgoraError):
    """The user has no entry on this event."""

    code = "entry_not_found"
    status_code = 404


class InvalidOptionError(AgoraError):
    """Option does not belong to the event."""

    code = "invalid_option"
    status_code = 400


class InsufficientFundsError(AgoraError):
    """Participant balance pre-check failed."""

    code = "insufficient_funds"
    status_code = 402


class NoPayoutAddressError(AgoraError):
    """Participant has no registered payout address."""

    code = "no_payout_address"
    status_code = 400


class TreasuryNotFoundError(AgoraError):
    """Tenant has no treasury record."""

    code = "treasury_not_found"
    status_code = 404


class SecretStoreUnavailableError(AgoraError):
    """Treasury secrets cannot be encrypted; no key is configured."""

    code = "secret_store_unavailable"
    status_code = 503


class OracleUnavailableError(AgoraError):
    """Exchange rate could not be fetched; settlement must not proceed."""

    code = "oracle_unavailable"
    status_code = 503


def format_api_error(exc: AgoraError) -> dict[str, Any]:
    """Convert a domain error to an API error body."""
    body: dict[str, Any] = {"error": exc.code, "message": exc.message}
    if exc.details:
        body["details"] = exc.details
    return body


def format_log_error(exc: Exception) -> str:
    """Convert an exception to a single log-friendly line."""
    code = getattr(exc, "code", type(exc).__name__)
    return f"{code}: {exc}"
