"""Portfolime - session and editable-state core for hosted portfolios."""

__version__ = "0.1.0"

from portfolime.exceptions import (
    CredentialError,
    NotFoundError,
    PortfolimeError,
    ProviderAuthError,
    ValidationError,
)

__all__ = [
    "__version__",
    "CredentialError",
    "NotFoundError",
    "PortfolimeError",
    "ProviderAuthError",
    "ValidationError",
]
