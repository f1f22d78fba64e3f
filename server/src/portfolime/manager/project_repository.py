"""In-memory project store for one portfolio.

Owns the canonical project sequence (newest first). Every read hands out
deep copies, so callers can never mutate the canonical list directly.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Callable, Iterable, Literal

from portfolime.exceptions import NotFoundError, ValidationError
from portfolime.models.project import (
    FilterCriteria,
    Project,
    ProjectDraft,
    ProjectStats,
)

logger = logging.getLogger(__name__)

ChangeEvent = Literal["added", "updated", "removed"]
ChangeListener = Callable[[ChangeEvent, int], None]


class ProjectRepository:
    """CRUD store with monotonic ids and a derived filtered view."""

    def __init__(self, projects: Iterable[Project] = ()) -> None:
        self._projects: list[Project] = []
        self._listeners: list[ChangeListener] = []
        for project in projects:
            if self._index_of(project.id) is not None:
                raise ValueError(f"Duplicate project id: {project.id}")
            self._projects.append(project.model_copy(deep=True))

    def __len__(self) -> int:
        return len(self._projects)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> list[Project]:
        """Canonical sequence, most recently added first."""
        return [p.model_copy(deep=True) for p in self._projects]

    def get(self, project_id: int) -> Project:
        index = self._require(project_id)
        return self._projects[index].model_copy(deep=True)

    def filter(self, criteria: FilterCriteria) -> list[Project]:
        """Projects matching the search text and status, canonical order kept."""
        return [
            project
            for project in self.list()
            if project.matches(criteria.search_text)
            and criteria.status.matches(project.status)
            and (criteria.include_hidden or not project.hidden)
        ]

    def skills(self) -> list[str]:
        """Unique tags across all projects, in canonical order."""
        seen: list[str] = []
        for project in self._projects:
            for tag in project.tags:
                if tag not in seen:
                    seen.append(tag)
        return seen

    def stats(self) -> ProjectStats:
        return ProjectStats(
            projects_count=len(self._projects),
            appreciation_count=sum(p.appreciation for p in self._projects),
        )

    def next_id(self) -> int:
        return max((p.id for p in self._projects), default=0) + 1

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, draft: ProjectDraft) -> Project:
        """Store a new project at the front of the list.

        Raises:
            ValidationError: If the title is empty
        """
        title = _require_title(draft)
        project = Project(id=self.next_id(), **draft.model_dump(exclude={"title"}), title=title)
        self._projects.insert(0, project)
        logger.info(f"Added project {project.id}: {project.title}")
        self._notify("added", project.id)
        return project.model_copy(deep=True)

    def update(self, project_id: int, draft: ProjectDraft) -> Project:
        """Replace the editable fields of a project in place.

        Id, position, likes and visibility are preserved.

        Raises:
            NotFoundError: If no project has this id
            ValidationError: If the title is empty
        """
        index = self._require(project_id)
        title = _require_title(draft)
        current = self._projects[index]
        updated = current.model_copy(
            update={
                **draft.model_dump(exclude={"title"}),
                "title": title,
                "updated_at": datetime.now(UTC),
            },
            deep=True,
        )
        self._projects[index] = updated
        logger.info(f"Updated project {project_id}")
        self._notify("updated", project_id)
        return updated.model_copy(deep=True)

    def remove(self, project_id: int) -> None:
        """Delete a project.

        Raises:
            NotFoundError: If no project has this id, including a second
                remove of the same id
        """
        index = self._require(project_id)
        del self._projects[index]
        logger.info(f"Removed project {project_id}")
        self._notify("removed", project_id)

    def toggle_like(self, project_id: int, viewer_uid: str) -> Project:
        """Like or unlike a project on behalf of ``viewer_uid``."""
        index = self._require(project_id)
        project = self._projects[index]
        liked_by = list(project.liked_by)
        if viewer_uid in liked_by:
            liked_by.remove(viewer_uid)
        else:
            liked_by.append(viewer_uid)
        updated = project.model_copy(
            update={"liked_by": liked_by, "appreciation": len(liked_by)}
        )
        self._projects[index] = updated
        self._notify("updated", project_id)
        return updated.model_copy(deep=True)

    def set_hidden(self, project_id: int, hidden: bool) -> Project:
        """Hide or show a project on the owner's public profile."""
        index = self._require(project_id)
        updated = self._projects[index].model_copy(update={"hidden": hidden})
        self._projects[index] = updated
        logger.info(f"Project {project_id} {'hidden' if hidden else 'visible'}")
        self._notify("updated", project_id)
        return updated.model_copy(deep=True)

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener(event, project_id)`` after each successful change."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _index_of(self, project_id: int) -> int | None:
        for index, project in enumerate(self._projects):
            if project.id == project_id:
                return index
        return None

    def _require(self, project_id: int) -> int:
        index = self._index_of(project_id)
        if index is None:
            raise NotFoundError("Project", project_id)
        return index

    def _notify(self, event: ChangeEvent, project_id: int) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, project_id)
            except Exception:
                logger.exception(f"Project listener failed on {event} {project_id}")


def _require_title(draft: ProjectDraft) -> str:
    title = draft.title.strip()
    if not title:
        raise ValidationError("title", "Project title is required")
    return title


def sample_projects() -> list[Project]:
    """Demo projects for a freshly claimed portfolio."""
    return [
        Project(
            id=2,
            title="Finix",
            description="Personal finance tracker for Android.",
            tags=["Java", "Android SDK"],
            status="Completed",
            date="Mar 2024",
        ),
        Project(
            id=1,
            title="Portfolio Site",
            description="Themeable portfolio with five interchangeable looks.",
            tags=["React", "Tailwind"],
            status="Ongoing",
            date="Jan 2025",
        ),
    ]
