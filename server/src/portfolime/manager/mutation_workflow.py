"""Modal workflow for adding, editing and deleting projects.

One form serves both add and edit; deletion always goes through an
explicit confirmation step. At most one modal is open at a time.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from portfolime.exceptions import NotFoundError, WorkflowStateError
from portfolime.manager.edit_mode import EditCapability
from portfolime.manager.project_repository import ProjectRepository
from portfolime.models.project import Project, ProjectDraft

logger = logging.getLogger(__name__)


class FormMode(str, Enum):
    """Which purpose the project form is open for."""

    ADD = "add"
    EDIT = "edit"


@dataclass(frozen=True)
class Idle:
    """No modal open."""

    def __str__(self) -> str:
        return "idle"


@dataclass(frozen=True)
class FormOpen:
    """Add/edit form open. ``target`` is set only in edit mode."""

    mode: FormMode
    target: Project | None = None

    def __str__(self) -> str:
        return f"form open ({self.mode.value})"


@dataclass(frozen=True)
class DeleteRequested:
    """Delete confirmation open for ``target_id``."""

    target_id: int

    def __str__(self) -> str:
        return f"delete requested ({self.target_id})"


WorkflowState = Idle | FormOpen | DeleteRequested

IDLE = Idle()


class MutationWorkflow:
    """State machine driving the project modals.

    Mutations are only performed while ``edit_mode`` reports edit mode;
    otherwise opening a modal is a no-op and a pending modal is discarded
    without touching the repository.
    """

    def __init__(self, repository: ProjectRepository, edit_mode: EditCapability) -> None:
        self._repository = repository
        self._edit_mode = edit_mode
        self._state: WorkflowState = IDLE

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return isinstance(self._state, Idle)

    # ------------------------------------------------------------------
    # Add / edit form
    # ------------------------------------------------------------------

    def open_add(self) -> bool:
        """Open an empty form. Returns False when read-only."""
        return self._open(FormOpen(FormMode.ADD), "open add form")

    def open_edit(self, project: Project) -> bool:
        """Open the form pre-populated from ``project``. Returns False when read-only."""
        return self._open(
            FormOpen(FormMode.EDIT, project.model_copy(deep=True)), "open edit form"
        )

    def form_defaults(self) -> ProjectDraft:
        """Initial form values for the open form."""
        state = self._expect(FormOpen, "read form defaults")
        if state.mode is FormMode.EDIT and state.target is not None:
            return state.target.to_draft()
        return ProjectDraft()

    def submit(self, form_data: ProjectDraft) -> Project | None:
        """Save the form through the repository and close it.

        Returns the stored project, or None when the form was discarded
        because edit mode is off.

        Raises:
            ValidationError: Form stays open for correction
            NotFoundError: Edit target vanished; the form is closed and the
                caller should re-read the project list
        """
        state = self._expect(FormOpen, "submit")
        if not self._edit_mode.is_edit_mode:
            logger.debug("Discarding project form: read-only")
            self._state = IDLE
            return None

        try:
            if state.mode is FormMode.ADD:
                project = self._repository.add(form_data)
            else:
                project = self._repository.update(state.target.id, form_data)
        except NotFoundError:
            logger.warning(f"Edit target {state.target.id} no longer exists")
            self._state = IDLE
            raise

        self._state = IDLE
        return project

    def cancel(self) -> None:
        """Close the form, discarding unsaved data."""
        self._expect(FormOpen, "cancel form")
        self._state = IDLE

    # ------------------------------------------------------------------
    # Delete confirmation
    # ------------------------------------------------------------------

    def request_delete(self, project_id: int) -> bool:
        """Ask for confirmation before deleting. Returns False when read-only."""
        return self._open(DeleteRequested(project_id), "request delete")

    def confirm_delete(self) -> int | None:
        """Delete the pending target and close the confirmation.

        Returns the deleted id, or None when discarded because edit mode is off.

        Raises:
            NotFoundError: Target already gone; the confirmation is closed
        """
        state = self._expect(DeleteRequested, "confirm delete")
        self._state = IDLE
        if not self._edit_mode.is_edit_mode:
            logger.debug(f"Discarding delete of {state.target_id}: read-only")
            return None

        try:
            self._repository.remove(state.target_id)
        except NotFoundError:
            logger.warning(f"Delete target {state.target_id} no longer exists")
            raise
        return state.target_id

    def cancel_delete(self) -> None:
        """Close the confirmation without deleting."""
        self._expect(DeleteRequested, "cancel delete")
        self._state = IDLE

    def reset(self) -> None:
        """Drop whatever modal is open, e.g. when edit mode turns off."""
        if not self.is_idle:
            logger.debug(f"Discarding {self._state}")
            self._state = IDLE

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open(self, state: FormOpen | DeleteRequested, action: str) -> bool:
        if not self._edit_mode.is_edit_mode:
            logger.debug(f"Ignoring {action}: read-only")
            return False
        if not self.is_idle:
            raise WorkflowStateError(action, self._state)
        self._state = state
        return True

    def _expect(self, kind: type, action: str):
        if not isinstance(self._state, kind):
            raise WorkflowStateError(action, self._state)
        return self._state
