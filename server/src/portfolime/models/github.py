"""GitHub repository models for the project import picker."""

from pydantic import BaseModel


class GitHubRepo(BaseModel):
    """A repository the owner can import as a project."""

    id: int
    name: str
    html_url: str
    description: str | None = None
    language: str | None = None
    languages_url: str | None = None
    owner_avatar: str | None = None


class GitHubTokenRequest(BaseModel):
    """Personal access token to check against a GitHub login."""

    token: str
    github_username: str | None = None
