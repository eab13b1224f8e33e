"""
Errors raised by the EtherVote services.

Every error carries a category name, the HTTP status it maps to and whether
the caller may retry. Retryable failures (TransactionAborted,
ExternalServiceUnavailable) require the caller to re-query the voter's
voting status before submitting a vote again.
"""

from typing import Any, Dict, Optional


class EtherVoteError(Exception):
    """
    Base error for the application.

    Attributes:
        message: Human-readable message shown to the user
        details: Extra context for logs and API consumers
    """

    category = "error"
    status_code = 500
    retryable = False
    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "error": self.category, "retryable": self.retryable}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(EtherVoteError):
    """Reference data (district, constituency), a candidate or a voter is missing."""

    category = "not_found"
    status_code = 404

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} not found: {name}", details={"kind": kind, "name": name})


class AlreadyVotedError(EtherVoteError):
    category = "already_voted"
    status_code = 409

    def __init__(self, voter_id: str):
        super().__init__("Voter has already voted.", details={"voter_id": voter_id})


class DuplicateIdentifierError(EtherVoteError):
    """Registration collides with an existing email or voter id."""

    category = "duplicate_identifier"
    status_code = 409

    def __init__(self, field: str, value: str):
        super().__init__(f"A voter with this {field} already exists.", details={"field": field, "value": value})


class ValidationFailedError(EtherVoteError):
    category = "validation_failed"
    status_code = 422


class InvalidCredentialsError(EtherVoteError):
    category = "invalid_credentials"
    status_code = 401
    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class ForbiddenError(EtherVoteError):
    """Authenticated, but the role does not allow the action."""

    category = "forbidden"
    status_code = 403

    def __init__(self, message: str = "You must be an admin to perform this action."):
        super().__init__(message)


class TransactionAbortedError(EtherVoteError):
    """The atomic vote step failed; nothing was committed."""

    category = "transaction_aborted"
    status_code = 503
    retryable = True


class ExternalServiceUnavailableError(EtherVoteError):
    """Storage or ledger provider could not be reached."""

    category = "external_service_unavailable"
    status_code = 503
    retryable = True

    def __init__(self, service: str, reason: str = ""):
        message = f"{service} is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"service": service})


class ConfigurationError(EtherVoteError):
    """Invalid or missing configuration (e.g. unknown storage backend)."""

    category = "configuration_error"

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, details={"config_key": config_key} if config_key else None)
