"""External collaborators for Portfolime."""

from portfolime.services.github_client import GitHubClient
from portfolime.services.identity_gateway import (
    IdentityCallback,
    IdentityGateway,
    LocalIdentityGateway,
)

__all__ = [
    "GitHubClient",
    "IdentityCallback",
    "IdentityGateway",
    "LocalIdentityGateway",
]
