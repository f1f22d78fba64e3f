"""Pydantic models for Portfolime - the contracts."""

from portfolime.models.github import GitHubRepo, GitHubTokenRequest
from portfolime.models.identity import ProviderKind, SessionState, UserIdentity
from portfolime.models.profile import (
    Comment,
    CommentCreate,
    CommentReply,
    Profile,
    ProfileResponse,
    ProfileUpdate,
    SkillCreate,
)
from portfolime.models.project import (
    CriteriaUpdate,
    FilterCriteria,
    Project,
    ProjectDraft,
    ProjectListResponse,
    ProjectStats,
    ProjectStatus,
    StatusFilter,
)
from portfolime.models.session import (
    ClaimRequest,
    CredentialsRequest,
    OutletContext,
    PasswordResetRequest,
    SessionResponse,
)

__all__ = [
    "ClaimRequest",
    "Comment",
    "CommentCreate",
    "CommentReply",
    "CredentialsRequest",
    "CriteriaUpdate",
    "FilterCriteria",
    "GitHubRepo",
    "GitHubTokenRequest",
    "OutletContext",
    "PasswordResetRequest",
    "Profile",
    "ProfileResponse",
    "ProfileUpdate",
    "Project",
    "ProjectDraft",
    "ProjectListResponse",
    "ProjectStats",
    "ProjectStatus",
    "ProviderKind",
    "SessionResponse",
    "SessionState",
    "SkillCreate",
    "StatusFilter",
    "UserIdentity",
]
