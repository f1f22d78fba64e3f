"""GitHub REST client for importing repositories as projects.

Listing is best effort: a failing source (the organization list, one
organization's repositories) is logged and skipped, so the picker still shows
whatever could be fetched.
"""

import asyncio
import logging
from typing import Any

import httpx

from portfolime.exceptions import GitHubTokenError
from portfolime.models.github import GitHubRepo

logger = logging.getLogger(__name__)


class GitHubClient:
    """Thin async wrapper over the GitHub REST API."""

    def __init__(
        self,
        base_url: str = "https://api.github.com",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API root, overridable for GitHub Enterprise
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self, token: str | None) -> httpx.AsyncClient:
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"token {token}"
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def fetch_repositories(self, username: str, token: str | None = None) -> list[GitHubRepo]:
        """Personal and organization repositories, deduplicated by id.

        Args:
            username: GitHub login whose repositories are listed
            token: Optional personal access token (needs ``read:org`` for orgs)

        Returns:
            Repositories in fetch order; empty when nothing could be fetched
        """
        if not username:
            return []

        async with self._client(token) as client:
            orgs = await self._fetch_orgs(client)
            requests = [
                client.get(
                    f"/users/{username}/repos",
                    params={"type": "all", "sort": "updated", "per_page": 100},
                )
            ]
            requests += [
                client.get(
                    f"/orgs/{org}/repos",
                    params={"sort": "updated", "per_page": 100},
                )
                for org in orgs
            ]
            results = await asyncio.gather(*requests, return_exceptions=True)

        repos: dict[int, GitHubRepo] = {}
        for result in results:
            for raw in _repo_list(result):
                repo = _to_repo(raw)
                # First position wins, later data replaces it
                repos[repo.id] = repo
        logger.info(f"Fetched {len(repos)} GitHub repositories for {username}")
        return list(repos.values())

    async def fetch_languages(self, languages_url: str, token: str | None = None) -> list[str]:
        """Language names of one repository, most used first.

        Only URLs under the configured API root are followed.
        """
        if not languages_url or not languages_url.startswith(self._base_url):
            return []
        path = languages_url[len(self._base_url):]
        try:
            async with self._client(token) as client:
                resp = await client.get(path)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch languages from {languages_url}: {e}")
            return []
        return list(resp.json().keys())

    async def validate_token(self, username: str, token: str) -> str:
        """Check that ``token`` belongs to ``username``.

        Returns:
            The token owner's login

        Raises:
            GitHubTokenError: Token rejected, or owned by another login
        """
        try:
            async with self._client(token) as client:
                resp = await client.get("/user")
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GitHubTokenError(
                f"GitHub rejected the token: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise GitHubTokenError(f"Could not reach GitHub: {e}") from e

        owner = resp.json().get("login", "")
        if owner.lower() != username.lower():
            raise GitHubTokenError(
                f'Token belongs to "{owner}", not "{username}".', owner=owner
            )
        return owner

    async def _fetch_orgs(self, client: httpx.AsyncClient) -> list[str]:
        try:
            resp = await client.get("/user/orgs")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch organizations (check 'read:org' scope): {e}")
            return []
        return [org["login"] for org in resp.json() if org.get("login")]


def _repo_list(result: Any) -> list[dict]:
    if isinstance(result, BaseException):
        logger.warning(f"Repository request failed: {result}")
        return []
    if result.status_code != 200:
        logger.warning(f"Repository request failed: HTTP {result.status_code} {result.url}")
        return []
    data = result.json()
    return data if isinstance(data, list) else []


def _to_repo(raw: dict) -> GitHubRepo:
    return GitHubRepo(
        id=raw["id"],
        name=raw.get("full_name") or raw.get("name", ""),
        html_url=raw.get("html_url", ""),
        description=raw.get("description"),
        language=raw.get("language"),
        languages_url=raw.get("languages_url"),
        owner_avatar=(raw.get("owner") or {}).get("avatar_url"),
    )
