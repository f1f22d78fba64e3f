"""Profile and comment models."""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from portfolime.models.project import ProjectStats


class Profile(BaseModel):
    """Identity card and skills panel data for one portfolio."""

    username: str
    owner_uid: str
    display_name: str | None = None
    role: str = ""
    bio: str = ""
    location: str = ""
    website: str = ""
    photo_url: str | None = None
    cover_url: str | None = None
    skills: list[str] = Field(default_factory=list)
    is_online: bool = False
    last_seen: datetime | None = None
    setup_complete: bool = False


class ProfileUpdate(BaseModel):
    """Editable identity-card fields. None means unchanged."""

    display_name: str | None = None
    role: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    photo_url: str | None = None
    cover_url: str | None = None


class CommentReply(BaseModel):
    """Owner's single-level reply to a comment."""

    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Comment(BaseModel):
    """A visitor comment on a project."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: int
    author_uid: str
    author_name: str
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reply: CommentReply | None = None


class CommentCreate(BaseModel):
    """Request body for posting a comment or reply."""

    text: str


class SkillCreate(BaseModel):
    """Request body for adding a skill."""

    skill: str


class ProfileResponse(BaseModel):
    """Identity card, skills panel and dashboard counters."""

    profile: Profile
    skills: list[str]
    stats: ProjectStats
    is_edit_mode: bool
