"""Project models - the entities behind the project grid."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ProjectStatus(str, Enum):
    """Lifecycle status shown on a project card."""

    COMPLETED = "Completed"
    ONGOING = "Ongoing"


class StatusFilter(str, Enum):
    """Status selector in the project toolbar."""

    ALL = "All"
    COMPLETED = "Completed"
    ONGOING = "Ongoing"

    def matches(self, status: ProjectStatus) -> bool:
        return self is StatusFilter.ALL or self.value == status.value


def _clean_tags(tags: list[str]) -> list[str]:
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class ProjectDraft(BaseModel):
    """Form payload for the add/edit project modal.

    Only the title is required, and that is enforced by the repository so
    the form can be rendered empty.
    """

    title: str = ""
    description: str = ""
    image: str | None = None
    tags: list[str] = Field(default_factory=list)
    status: ProjectStatus = ProjectStatus.ONGOING
    date: str = ""
    github_link: str | None = None
    live_link: str | None = None

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, tags: list[str]) -> list[str]:
        return _clean_tags(tags)


class Project(BaseModel):
    """A stored project."""

    id: int = Field(ge=1)
    title: str
    description: str = ""
    image: str | None = None
    tags: list[str] = Field(default_factory=list)
    status: ProjectStatus = ProjectStatus.ONGOING
    date: str = ""
    github_link: str | None = None
    live_link: str | None = None

    # Engagement and visibility, untouched by edits
    appreciation: int = 0
    liked_by: list[str] = Field(default_factory=list)
    hidden: bool = False

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_draft(self) -> ProjectDraft:
        """Pre-populate the edit form from this project."""
        return ProjectDraft(
            title=self.title,
            description=self.description,
            image=self.image,
            tags=list(self.tags),
            status=self.status,
            date=self.date,
            github_link=self.github_link,
            live_link=self.live_link,
        )

    def matches(self, search_text: str) -> bool:
        """Case-insensitive match against the title or any tag."""
        needle = search_text.lower()
        if needle in self.title.lower():
            return True
        return any(needle in tag.lower() for tag in self.tags)


class FilterCriteria(BaseModel):
    """Search box, status selector and hidden-project toggle."""

    search_text: str = ""
    status: StatusFilter = StatusFilter.ALL
    include_hidden: bool = True


class CriteriaUpdate(BaseModel):
    """Toolbar changes for a project grid. None means unchanged."""

    search_text: str | None = None
    status: StatusFilter | None = None
    show_hidden: bool | None = None


class ProjectStats(BaseModel):
    """Dashboard counters derived from the project list."""

    projects_count: int = 0
    appreciation_count: int = 0


class ProjectListResponse(BaseModel):
    """Filtered projection returned to a project grid."""

    projects: list[Project]
    criteria: FilterCriteria
    total: int
    is_edit_mode: bool
    # Project id -> number of comments, for the visible projects only
    comment_counts: dict[int, int] = Field(default_factory=dict)
