"""Multi-tenant portfolio directory.

Maps each ``/{username}`` namespace to the portfolio that lives there.
"""

import logging
import re
from dataclasses import dataclass, field

from portfolime.exceptions import NotFoundError, UsernameTakenError, ValidationError
from portfolime.manager.comment_store import CommentStore
from portfolime.manager.profile_store import ProfileStore
from portfolime.manager.project_repository import ProjectRepository, sample_projects
from portfolime.models.identity import SessionState
from portfolime.models.profile import Profile

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 3
# Top-level paths that are not portfolio namespaces
RESERVED_USERNAMES = frozenset({"health", "login", "portfolios", "register", "session"})
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_username(username: str) -> str:
    """Return the trimmed username or raise ValidationError."""
    username = (username or "").strip()
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(
            "username", f"Username must be at least {USERNAME_MIN_LENGTH} characters"
        )
    if not _USERNAME_RE.match(username):
        raise ValidationError("username", "Username may only use letters, digits, '_' and '-'")
    if username.lower() in RESERVED_USERNAMES:
        raise ValidationError("username", f"Username is reserved: {username}")
    return username


@dataclass
class Portfolio:
    """Everything stored under one username."""

    username: str
    owner_uid: str
    projects: ProjectRepository
    profile: ProfileStore
    comments: CommentStore = field(default_factory=CommentStore)

    def __post_init__(self) -> None:
        self.projects.add_listener(self._on_project_change)

    def _on_project_change(self, event: str, project_id: int) -> None:
        if event == "removed":
            self.comments.drop_project(project_id)


class PortfolioDirectory:
    """Registry of claimed usernames."""

    def __init__(self, seed_sample_projects: bool = False) -> None:
        self._portfolios: dict[str, Portfolio] = {}
        self._seed_sample_projects = seed_sample_projects
        self._online_uid: str | None = None

    def __contains__(self, username: str) -> bool:
        return username in self._portfolios

    def __len__(self) -> int:
        return len(self._portfolios)

    def claim(self, username: str, owner_uid: str, display_name: str | None = None) -> Portfolio:
        """Create the portfolio for ``username`` owned by ``owner_uid``.

        Raises:
            ValidationError: Malformed username, or the owner already has one
            UsernameTakenError: Username already claimed
        """
        username = validate_username(username)
        if username in self._portfolios:
            raise UsernameTakenError(username)
        existing = self.find_by_owner(owner_uid)
        if existing is not None:
            raise ValidationError(
                "username", f"Account already owns the portfolio {existing.username}"
            )

        portfolio = Portfolio(
            username=username,
            owner_uid=owner_uid,
            projects=ProjectRepository(sample_projects() if self._seed_sample_projects else ()),
            profile=ProfileStore(
                Profile(username=username, owner_uid=owner_uid, display_name=display_name)
            ),
        )
        self._portfolios[username] = portfolio
        if owner_uid == self._online_uid:
            portfolio.profile.set_online(True)
        logger.info(f"Portfolio claimed: {username} by {owner_uid}")
        return portfolio

    def resolve(self, username: str) -> Portfolio:
        """Look up a portfolio.

        Raises:
            NotFoundError: Unknown username
        """
        portfolio = self._portfolios.get(username)
        if portfolio is None:
            raise NotFoundError("Portfolio", username)
        return portfolio

    def find_by_owner(self, owner_uid: str) -> Portfolio | None:
        for portfolio in self._portfolios.values():
            if portfolio.owner_uid == owner_uid:
                return portfolio
        return None

    def usernames(self) -> list[str]:
        return sorted(self._portfolios)

    def follow_session(self, state: SessionState) -> None:
        """Session listener keeping the owner's presence flag current."""
        uid = state.current.uid if state.current else None
        if uid == self._online_uid:
            return
        if self._online_uid is not None:
            previous = self.find_by_owner(self._online_uid)
            if previous is not None:
                previous.profile.set_online(False)
        if uid is not None:
            portfolio = self.find_by_owner(uid)
            if portfolio is not None:
                portfolio.profile.set_online(True)
        self._online_uid = uid
