"""Session, edit-mode and project state management."""

from portfolime.manager.comment_store import CommentStore
from portfolime.manager.directory import Portfolio, PortfolioDirectory, validate_username
from portfolime.manager.edit_mode import EditCapability, EditModeController
from portfolime.manager.layout import LayoutRegistry, PortfolioLayout, ProjectsView
from portfolime.manager.mutation_workflow import (
    DeleteRequested,
    FormMode,
    FormOpen,
    Idle,
    MutationWorkflow,
)
from portfolime.manager.profile_store import ProfileStore
from portfolime.manager.project_repository import ProjectRepository, sample_projects
from portfolime.manager.session_store import SessionStore

__all__ = [
    "CommentStore",
    "DeleteRequested",
    "EditCapability",
    "EditModeController",
    "FormMode",
    "FormOpen",
    "Idle",
    "LayoutRegistry",
    "MutationWorkflow",
    "Portfolio",
    "PortfolioDirectory",
    "PortfolioLayout",
    "ProfileStore",
    "ProjectRepository",
    "ProjectsView",
    "sample_projects",
    "SessionStore",
    "validate_username",
]
