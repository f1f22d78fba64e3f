"""Custom exceptions for Portfolime."""

from enum import Enum
from typing import Any


class PortfolimeError(Exception):
    """Base class for every recoverable error raised by the core."""


class ProviderAuthReason(str, Enum):
    """Why a popup sign-in did not produce an identity."""

    POPUP_CLOSED = "popup_closed"
    REJECTED = "rejected"
    ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL = "account_exists_with_different_credential"
    UNSUPPORTED_PROVIDER = "unsupported_provider"


class ProviderAuthError(PortfolimeError):
    """Raised when a provider popup is dismissed or the provider rejects."""

    def __init__(
        self,
        kind: Any,
        reason: ProviderAuthReason = ProviderAuthReason.REJECTED,
        message: str | None = None,
    ) -> None:
        self.kind = kind
        self.reason = reason
        label = getattr(kind, "label", kind)
        super().__init__(message or f"{label} sign-in failed: {reason.value}")


class CredentialReason(str, Enum):
    """Provider-reported reasons for a credential failure."""

    MISSING_FIELD = "missing_field"
    INVALID_EMAIL = "invalid_email"
    WEAK_PASSWORD = "weak_password"
    WRONG_PASSWORD = "wrong_password"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_EXISTS = "account_exists"
    UNKNOWN = "unknown"


# Provider error code -> (reason, form field)
_PROVIDER_CODES: dict[str, tuple[CredentialReason, str | None]] = {
    "auth/invalid-email": (CredentialReason.INVALID_EMAIL, "email"),
    "auth/missing-email": (CredentialReason.MISSING_FIELD, "email"),
    "auth/missing-password": (CredentialReason.MISSING_FIELD, "password"),
    "auth/weak-password": (CredentialReason.WEAK_PASSWORD, "password"),
    "auth/wrong-password": (CredentialReason.WRONG_PASSWORD, "password"),
    "auth/invalid-credential": (CredentialReason.WRONG_PASSWORD, "password"),
    "auth/user-not-found": (CredentialReason.ACCOUNT_NOT_FOUND, "email"),
    "auth/email-already-in-use": (CredentialReason.ACCOUNT_EXISTS, "email"),
}


class CredentialError(PortfolimeError):
    """Raised for malformed, incorrect or duplicate email/password credentials."""

    def __init__(
        self,
        reason: CredentialReason,
        field: str | None = None,
        message: str | None = None,
    ) -> None:
        self.reason = reason
        self.field = field
        super().__init__(message or f"Credential error: {reason.value}")

    @classmethod
    def from_provider_code(cls, code: str, message: str | None = None) -> "CredentialError":
        """Build an error from a provider error code such as ``auth/weak-password``."""
        reason, field = _PROVIDER_CODES.get(code, (CredentialReason.UNKNOWN, None))
        return cls(reason, field=field, message=message)


class NotFoundError(PortfolimeError):
    """Raised when an update/remove target is missing.

    Indicates the caller's view is out of sync with the store; the caller
    should re-read the canonical state.
    """

    def __init__(self, entity: str, key: Any) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class ValidationError(PortfolimeError):
    """Raised when a submitted form is missing a required value."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class UsernameTakenError(ValidationError):
    """Raised when a username is already claimed."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("username", f"Username taken: {username}")


class WorkflowStateError(PortfolimeError):
    """Raised when a modal transition is requested from the wrong state."""

    def __init__(self, action: str, state: Any) -> None:
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while {state}")


class PermissionDeniedError(PortfolimeError):
    """Raised when the acting user may not perform a mutation."""


class GitHubTokenError(PortfolimeError):
    """Raised when a GitHub token is rejected or belongs to another login."""

    def __init__(self, message: str, owner: str | None = None) -> None:
        self.owner = owner
        super().__init__(message)
