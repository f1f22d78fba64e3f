"""Username-scoped layouts and the views nested under them.

A ``PortfolioLayout`` is one mounted ``/{username}`` layout instance. It owns
the only ``EditModeController`` for its view tree and hands edit state to
its children through ``outlet()``; nothing is shared between layouts.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from portfolime.exceptions import NotFoundError
from portfolime.manager.directory import Portfolio
from portfolime.manager.edit_mode import EditCapability, EditModeController
from portfolime.manager.mutation_workflow import MutationWorkflow
from portfolime.manager.project_repository import ProjectRepository
from portfolime.manager.session_store import SessionStore
from portfolime.models.identity import SessionState
from portfolime.models.profile import Profile, ProfileUpdate
from portfolime.models.project import FilterCriteria, Project, StatusFilter
from portfolime.models.session import OutletContext

logger = logging.getLogger(__name__)


class ProjectsView:
    """Project grid: filter criteria, filtered projection and modals."""

    def __init__(self, repository: ProjectRepository, edit_mode: EditCapability) -> None:
        self._repository = repository
        self._edit_mode = edit_mode
        self.workflow = MutationWorkflow(repository, edit_mode)
        self.search_text = ""
        self.status = StatusFilter.ALL
        self.show_hidden = True

    def search(self, text: str) -> None:
        self.search_text = text

    def set_status(self, status: StatusFilter) -> None:
        self.status = status

    def set_show_hidden(self, show_hidden: bool) -> None:
        self.show_hidden = show_hidden

    def criteria(self, context: OutletContext) -> FilterCriteria:
        """Current criteria; hidden projects are only ever offered to the owner."""
        return FilterCriteria(
            search_text=self.search_text,
            status=self.status,
            include_hidden=context.is_owner and self.show_hidden,
        )

    def visible(self, context: OutletContext) -> list[Project]:
        """Recompute the filtered projection from the canonical list."""
        return self._repository.filter(self.criteria(context))

    def toggle_hidden(self, project_id: int) -> Project | None:
        """Hide or unhide a project on the public profile. No-op when read-only."""
        if not self._edit_mode.is_edit_mode:
            logger.debug(f"Ignoring visibility toggle of {project_id}: read-only")
            return None
        project = self._repository.get(project_id)
        return self._repository.set_hidden(project_id, not project.hidden)


class PortfolioLayout:
    """One mounted layout for a portfolio namespace.

    Edit mode is effective only while the signed-in user owns the
    portfolio; losing ownership (sign-out, account switch) forces view mode.
    """

    def __init__(self, layout_id: str, portfolio: Portfolio, session: SessionStore) -> None:
        self.layout_id = layout_id
        self._portfolio = portfolio
        self._session = session
        self._edit_mode = EditModeController()
        self._remove_session_listener = session.add_listener(self._on_session_change)
        self.projects = ProjectsView(portfolio.projects, edit_mode=self)
        self._edit_mode.add_listener(self._on_edit_mode_change)
        self.last_seen = datetime.now(UTC)

    def touch(self) -> None:
        self.last_seen = datetime.now(UTC)

    @property
    def username(self) -> str:
        return self._portfolio.username

    @property
    def portfolio(self) -> Portfolio:
        return self._portfolio

    @property
    def edit_mode(self) -> EditModeController:
        return self._edit_mode

    @property
    def is_owner(self) -> bool:
        return self._session.is_owner(self._portfolio.owner_uid)

    @property
    def is_edit_mode(self) -> bool:
        return self.is_owner and self._edit_mode.enabled

    def toggle_edit_mode(self) -> bool:
        """Flip edit mode for the owner; visitors stay in view mode."""
        if not self.is_owner:
            logger.debug(f"Ignoring edit toggle on {self.username}: not the owner")
            return False
        return self._edit_mode.toggle()

    def outlet(self) -> OutletContext:
        """Context injected into every nested view of this layout."""
        return OutletContext(
            layout_id=self.layout_id,
            username=self._portfolio.username,
            owner_uid=self._portfolio.owner_uid,
            is_owner=self.is_owner,
            is_edit_mode=self.is_edit_mode,
        )

    # Identity card and skills panel

    def update_profile(self, changes: ProfileUpdate) -> Profile | None:
        return self._portfolio.profile.update(changes, self)

    def add_skill(self, skill: str) -> bool:
        return self._portfolio.profile.add_skill(skill, self)

    def remove_skill(self, skill: str) -> bool:
        return self._portfolio.profile.remove_skill(skill, self)

    def skills(self) -> list[str]:
        return self._portfolio.profile.skills_overview(self._portfolio.projects.skills())

    def detach(self) -> None:
        """Stop following the session; called on unmount."""
        self._remove_session_listener()
        self._edit_mode.disable()

    def _on_session_change(self, state: SessionState) -> None:
        if not self.is_owner:
            self._edit_mode.disable()

    def _on_edit_mode_change(self, enabled: bool) -> None:
        # Modals are hidden in view mode, so a pending one is dropped
        if not enabled:
            self.projects.workflow.reset()


class LayoutRegistry:
    """Mounted layout instances, keyed by layout id.

    A layout nobody has looked up for ``idle_timeout`` seconds is treated
    as abandoned and evicted, releasing its session listener.
    """

    def __init__(self, idle_timeout: int = 1800) -> None:
        self._layouts: dict[str, PortfolioLayout] = {}
        self._idle_timeout = idle_timeout

    def mount(self, portfolio: Portfolio, session: SessionStore) -> PortfolioLayout:
        """Mount a fresh layout for ``portfolio`` in view mode."""
        self._check_timeouts()
        layout = PortfolioLayout(uuid4().hex, portfolio, session)
        self._layouts[layout.layout_id] = layout
        logger.info(f"Layout mounted: {layout.layout_id} for {portfolio.username}")
        return layout

    def get(self, layout_id: str, username: str | None = None) -> PortfolioLayout:
        """Look up a mounted layout, optionally checking its namespace.

        Raises:
            NotFoundError: Unknown or evicted id, or mounted under another username
        """
        self._check_timeouts()
        layout = self._layouts.get(layout_id)
        if layout is None or (username is not None and layout.username != username):
            raise NotFoundError("Layout", layout_id)
        layout.touch()
        return layout

    def unmount(self, layout_id: str) -> bool:
        """Discard a layout and its edit state.

        Returns:
            True if the layout was mounted
        """
        layout = self._layouts.pop(layout_id, None)
        if layout is None:
            return False
        layout.detach()
        logger.info(f"Layout unmounted: {layout_id}")
        return True

    def _check_timeouts(self) -> None:
        """Evict layouts idle for longer than the timeout."""
        cutoff = datetime.now(UTC) - timedelta(seconds=self._idle_timeout)
        stale = [
            layout_id
            for layout_id, layout in self._layouts.items()
            if layout.last_seen < cutoff
        ]
        for layout_id in stale:
            self._layouts.pop(layout_id).detach()
            logger.warning(f"Layout timed out: {layout_id}")

    def stats(self) -> dict[str, Any]:
        """Get registry statistics."""
        self._check_timeouts()
        layouts = list(self._layouts.values())
        return {
            "mounted_layouts": len(layouts),
            "editing_layouts": sum(1 for layout in layouts if layout.is_edit_mode),
        }
