"""FastAPI routes: session operations and the ``/{username}`` namespace."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status

from portfolime import __version__
from portfolime.api.auth import CurrentUser, ReadySession, Session
from portfolime.config import get_settings
from portfolime.exceptions import (
    CredentialError,
    GitHubTokenError,
    NotFoundError,
    PermissionDeniedError,
    PortfolimeError,
    ProviderAuthError,
    UsernameTakenError,
    ValidationError,
    WorkflowStateError,
)
from portfolime.manager.directory import Portfolio, PortfolioDirectory
from portfolime.manager.layout import LayoutRegistry, PortfolioLayout
from portfolime.models.github import GitHubRepo, GitHubTokenRequest
from portfolime.models.identity import ProviderKind, UserIdentity
from portfolime.models.profile import (
    Comment,
    CommentCreate,
    Profile,
    ProfileResponse,
    ProfileUpdate,
    SkillCreate,
)
from portfolime.models.project import (
    CriteriaUpdate,
    Project,
    ProjectDraft,
    ProjectListResponse,
)
from portfolime.models.session import (
    ClaimRequest,
    CredentialsRequest,
    OutletContext,
    PasswordResetRequest,
    SessionResponse,
)
from portfolime.services.github_client import GitHubClient

logger = logging.getLogger(__name__)

router = APIRouter()

# Dependency injection
_directory: PortfolioDirectory | None = None
_layouts: LayoutRegistry | None = None
_github: GitHubClient | None = None


def get_directory() -> PortfolioDirectory:
    """Get or create the portfolio directory."""
    global _directory
    if _directory is None:
        _directory = PortfolioDirectory(
            seed_sample_projects=get_settings().seed_sample_projects
        )
    return _directory


def get_github_client() -> GitHubClient:
    """Get or create the GitHub client."""
    global _github
    if _github is None:
        settings = get_settings()
        _github = GitHubClient(
            base_url=settings.github_api_url,
            timeout=settings.github_timeout,
        )
    return _github


def get_layout_registry() -> LayoutRegistry:
    """Get or create the layout registry."""
    global _layouts
    if _layouts is None:
        _layouts = LayoutRegistry(idle_timeout=get_settings().layout_idle_timeout)
    return _layouts


Directory = Annotated[PortfolioDirectory, Depends(get_directory)]
Layouts = Annotated[LayoutRegistry, Depends(get_layout_registry)]
GitHub = Annotated[GitHubClient, Depends(get_github_client)]


def _http_error(exc: PortfolimeError) -> HTTPException:
    """Translate a core error into an HTTP error for the calling view."""
    if isinstance(exc, UsernameTakenError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"field": exc.field, "message": str(exc)},
        )
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"field": exc.field, "message": str(exc)},
        )
    if isinstance(exc, CredentialError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"reason": exc.reason.value, "field": exc.field, "message": str(exc)},
        )
    if isinstance(exc, ProviderAuthError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "provider": getattr(exc.kind, "value", str(exc.kind)),
                "reason": exc.reason.value,
                "message": str(exc),
            },
        )
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, GitHubTokenError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"owner": exc.owner, "message": str(exc)},
        )
    if isinstance(exc, WorkflowStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _read_only() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Edit mode is off",
    )


def _resolve(directory: PortfolioDirectory, username: str) -> Portfolio:
    try:
        return directory.resolve(username)
    except NotFoundError as e:
        raise _http_error(e) from e


def _layout(layouts: LayoutRegistry, username: str, layout_id: str) -> PortfolioLayout:
    try:
        return layouts.get(layout_id, username=username)
    except NotFoundError as e:
        raise _http_error(e) from e


@router.get("/health")
async def health(layouts: Layouts) -> dict:
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": __version__,
        **layouts.stats(),
    }


# -----------------------------------------------------------------------------
# Session
# -----------------------------------------------------------------------------


@router.get("/session", response_model=SessionResponse)
async def get_session(session: Session) -> SessionResponse:
    """Current session snapshot, including the ``ready`` flag."""
    return SessionResponse.from_state(session.state)


@router.post("/session/providers/{kind}", response_model=UserIdentity)
async def sign_in_with_provider(kind: ProviderKind, session: Session) -> UserIdentity:
    """Popup sign-in with Google, GitHub or Twitter."""
    try:
        return await session.sign_in_with_provider(kind)
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post("/session/sign-up", response_model=UserIdentity, status_code=status.HTTP_201_CREATED)
async def sign_up(request: CredentialsRequest, session: Session) -> UserIdentity:
    """Create an email/password account."""
    try:
        return await session.sign_up(request.email, request.password)
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post("/session/log-in", response_model=UserIdentity)
async def log_in(request: CredentialsRequest, session: Session) -> UserIdentity:
    """Email/password log-in."""
    try:
        return await session.log_in(request.email, request.password)
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post("/session/password-reset", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(request: PasswordResetRequest, session: Session) -> None:
    """Send a password reset email."""
    try:
        await session.reset_password(request.email)
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post("/session/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(session: Session) -> None:
    """Sign out of the current session."""
    try:
        await session.sign_out()
    except PortfolimeError as e:
        raise _http_error(e) from e


# -----------------------------------------------------------------------------
# Portfolios and layouts
# -----------------------------------------------------------------------------


@router.get("/portfolios", response_model=list[str])
async def list_portfolios(directory: Directory) -> list[str]:
    """All claimed usernames."""
    return directory.usernames()


@router.post("/portfolios", response_model=Profile, status_code=status.HTTP_201_CREATED)
async def claim_portfolio(
    request: ClaimRequest,
    user: CurrentUser,
    directory: Directory,
) -> Profile:
    """Onboarding: claim a username for the signed-in user."""
    try:
        portfolio = directory.claim(
            request.username,
            owner_uid=user.uid,
            display_name=request.display_name or user.display_name,
        )
    except PortfolimeError as e:
        raise _http_error(e) from e
    return portfolio.profile.profile


@router.post(
    "/{username}/layouts",
    response_model=OutletContext,
    status_code=status.HTTP_201_CREATED,
)
async def mount_layout(
    username: str,
    session: ReadySession,
    directory: Directory,
    layouts: Layouts,
) -> OutletContext:
    """Mount a layout for ``username``; edit mode starts off."""
    portfolio = _resolve(directory, username)
    layout = layouts.mount(portfolio, session)
    return layout.outlet()


@router.get("/{username}/layouts/{layout_id}", response_model=OutletContext)
async def get_layout(username: str, layout_id: str, layouts: Layouts) -> OutletContext:
    """The context handed to the layout's nested views."""
    return _layout(layouts, username, layout_id).outlet()


@router.delete("/{username}/layouts/{layout_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unmount_layout(username: str, layout_id: str, layouts: Layouts) -> None:
    """Unmount a layout, discarding its edit state."""
    _layout(layouts, username, layout_id)
    layouts.unmount(layout_id)


@router.post("/{username}/layouts/{layout_id}/edit-mode", response_model=OutletContext)
async def toggle_edit_mode(username: str, layout_id: str, layouts: Layouts) -> OutletContext:
    """Flip between edit and view mode. Owner only."""
    layout = _layout(layouts, username, layout_id)
    if not layout.is_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner can edit this portfolio",
        )
    layout.toggle_edit_mode()
    return layout.outlet()


# -----------------------------------------------------------------------------
# Project grid
# -----------------------------------------------------------------------------


def _project_list(layout: PortfolioLayout) -> ProjectListResponse:
    context = layout.outlet()
    projects = layout.projects.visible(context)
    comments = layout.portfolio.comments
    return ProjectListResponse(
        projects=projects,
        criteria=layout.projects.criteria(context),
        total=len(layout.portfolio.projects),
        is_edit_mode=context.is_edit_mode,
        comment_counts={p.id: comments.count(p.id) for p in projects},
    )


@router.get("/{username}/layouts/{layout_id}/projects", response_model=ProjectListResponse)
async def list_projects(username: str, layout_id: str, layouts: Layouts) -> ProjectListResponse:
    """Filtered project list under the view's current criteria."""
    return _project_list(_layout(layouts, username, layout_id))


@router.patch(
    "/{username}/layouts/{layout_id}/projects/criteria",
    response_model=ProjectListResponse,
)
async def update_criteria(
    username: str,
    layout_id: str,
    changes: CriteriaUpdate,
    layouts: Layouts,
) -> ProjectListResponse:
    """Change the search box, status selector or hidden toggle."""
    layout = _layout(layouts, username, layout_id)
    view = layout.projects
    if changes.search_text is not None:
        view.search(changes.search_text)
    if changes.status is not None:
        view.set_status(changes.status)
    if changes.show_hidden is not None:
        view.set_show_hidden(changes.show_hidden)
    return _project_list(layout)


@router.post("/{username}/layouts/{layout_id}/form", response_model=ProjectDraft)
async def open_add_form(username: str, layout_id: str, layouts: Layouts) -> ProjectDraft:
    """Open the empty add-project form."""
    workflow = _layout(layouts, username, layout_id).projects.workflow
    try:
        if not workflow.open_add():
            raise _read_only()
        return workflow.form_defaults()
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post(
    "/{username}/layouts/{layout_id}/projects/{project_id}/form",
    response_model=ProjectDraft,
)
async def open_edit_form(
    username: str,
    layout_id: str,
    project_id: int,
    layouts: Layouts,
) -> ProjectDraft:
    """Open the form pre-filled with an existing project."""
    layout = _layout(layouts, username, layout_id)
    workflow = layout.projects.workflow
    try:
        project = layout.portfolio.projects.get(project_id)
        if not workflow.open_edit(project):
            raise _read_only()
        return workflow.form_defaults()
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post("/{username}/layouts/{layout_id}/form/submit", response_model=Project)
async def submit_form(
    username: str,
    layout_id: str,
    form_data: ProjectDraft,
    layouts: Layouts,
) -> Project:
    """Save the open form (add or edit)."""
    workflow = _layout(layouts, username, layout_id).projects.workflow
    try:
        project = workflow.submit(form_data)
    except PortfolimeError as e:
        raise _http_error(e) from e
    if project is None:
        raise _read_only()
    return project


@router.delete("/{username}/layouts/{layout_id}/form", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_form(username: str, layout_id: str, layouts: Layouts) -> None:
    """Close the form without saving."""
    workflow = _layout(layouts, username, layout_id).projects.workflow
    try:
        workflow.cancel()
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post(
    "/{username}/layouts/{layout_id}/projects/{project_id}/delete-request",
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_delete(
    username: str,
    layout_id: str,
    project_id: int,
    layouts: Layouts,
) -> dict:
    """Open the delete confirmation for a project."""
    workflow = _layout(layouts, username, layout_id).projects.workflow
    try:
        if not workflow.request_delete(project_id):
            raise _read_only()
    except PortfolimeError as e:
        raise _http_error(e) from e
    return {"target_id": project_id}


@router.post("/{username}/layouts/{layout_id}/delete-request/confirm")
async def confirm_delete(username: str, layout_id: str, layouts: Layouts) -> dict:
    """Delete the project awaiting confirmation."""
    layout = _layout(layouts, username, layout_id)
    try:
        deleted = layout.projects.workflow.confirm_delete()
    except PortfolimeError as e:
        raise _http_error(e) from e
    if deleted is None:
        raise _read_only()
    return {"deleted": deleted}


@router.delete(
    "/{username}/layouts/{layout_id}/delete-request",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def cancel_delete(username: str, layout_id: str, layouts: Layouts) -> None:
    """Close the delete confirmation without deleting."""
    workflow = _layout(layouts, username, layout_id).projects.workflow
    try:
        workflow.cancel_delete()
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post(
    "/{username}/layouts/{layout_id}/projects/{project_id}/visibility",
    response_model=Project,
)
async def toggle_visibility(
    username: str,
    layout_id: str,
    project_id: int,
    layouts: Layouts,
) -> Project:
    """Hide or unhide a project on the public profile."""
    layout = _layout(layouts, username, layout_id)
    try:
        project = layout.projects.toggle_hidden(project_id)
    except PortfolimeError as e:
        raise _http_error(e) from e
    if project is None:
        raise _read_only()
    return project


@router.post("/{username}/projects/{project_id}/like", response_model=Project)
async def toggle_like(
    username: str,
    project_id: int,
    user: CurrentUser,
    directory: Directory,
) -> Project:
    """Like or unlike a project as the signed-in user."""
    portfolio = _resolve(directory, username)
    try:
        return portfolio.projects.toggle_like(project_id, user.uid)
    except PortfolimeError as e:
        raise _http_error(e) from e


# -----------------------------------------------------------------------------
# Identity card and skills
# -----------------------------------------------------------------------------


def _profile_response(layout: PortfolioLayout) -> ProfileResponse:
    portfolio = layout.portfolio
    return ProfileResponse(
        profile=portfolio.profile.profile,
        skills=layout.skills(),
        stats=portfolio.projects.stats(),
        is_edit_mode=layout.is_edit_mode,
    )


@router.get("/{username}/layouts/{layout_id}/profile", response_model=ProfileResponse)
async def get_profile(username: str, layout_id: str, layouts: Layouts) -> ProfileResponse:
    """Identity card, skills and counters."""
    return _profile_response(_layout(layouts, username, layout_id))


@router.patch("/{username}/layouts/{layout_id}/profile", response_model=ProfileResponse)
async def update_profile(
    username: str,
    layout_id: str,
    changes: ProfileUpdate,
    layouts: Layouts,
) -> ProfileResponse:
    """Edit the identity card."""
    layout = _layout(layouts, username, layout_id)
    if layout.update_profile(changes) is None:
        raise _read_only()
    return _profile_response(layout)


@router.post("/{username}/layouts/{layout_id}/profile/skills", response_model=ProfileResponse)
async def add_skill(
    username: str,
    layout_id: str,
    request: SkillCreate,
    layouts: Layouts,
) -> ProfileResponse:
    """Add a skill to the skills panel."""
    layout = _layout(layouts, username, layout_id)
    if not layout.is_edit_mode:
        raise _read_only()
    try:
        layout.add_skill(request.skill)
    except PortfolimeError as e:
        raise _http_error(e) from e
    return _profile_response(layout)


@router.delete(
    "/{username}/layouts/{layout_id}/profile/skills/{skill}",
    response_model=ProfileResponse,
)
async def remove_skill(
    username: str,
    layout_id: str,
    skill: str,
    layouts: Layouts,
) -> ProfileResponse:
    """Remove a skill from the skills panel."""
    layout = _layout(layouts, username, layout_id)
    if not layout.is_edit_mode:
        raise _read_only()
    layout.remove_skill(skill)
    return _profile_response(layout)


# -----------------------------------------------------------------------------
# GitHub import
# -----------------------------------------------------------------------------


def _owner_layout(layouts: LayoutRegistry, username: str, layout_id: str) -> PortfolioLayout:
    layout = _layout(layouts, username, layout_id)
    if not layout.is_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner can import from GitHub",
        )
    return layout


GitHubToken = Annotated[str | None, Header(alias="X-GitHub-Token")]


@router.get("/{username}/layouts/{layout_id}/github/repos", response_model=list[GitHubRepo])
async def list_github_repos(
    username: str,
    layout_id: str,
    layouts: Layouts,
    github: GitHub,
    token: GitHubToken = None,
    github_username: str | None = None,
) -> list[GitHubRepo]:
    """Repositories the owner can import as projects.

    ``github_username`` defaults to the portfolio username.
    """
    layout = _owner_layout(layouts, username, layout_id)
    return await github.fetch_repositories(github_username or layout.username, token)


@router.get("/{username}/layouts/{layout_id}/github/languages", response_model=list[str])
async def list_github_languages(
    username: str,
    layout_id: str,
    url: str,
    layouts: Layouts,
    github: GitHub,
    token: GitHubToken = None,
) -> list[str]:
    """Languages of one repository, for pre-filling project tags."""
    _owner_layout(layouts, username, layout_id)
    return await github.fetch_languages(url, token)


@router.post("/{username}/layouts/{layout_id}/github/token")
async def validate_github_token(
    username: str,
    layout_id: str,
    request: GitHubTokenRequest,
    layouts: Layouts,
    github: GitHub,
) -> dict:
    """Check a personal access token before the owner saves it."""
    layout = _owner_layout(layouts, username, layout_id)
    try:
        login = await github.validate_token(request.github_username or layout.username, request.token)
    except PortfolimeError as e:
        raise _http_error(e) from e
    return {"login": login}


# -----------------------------------------------------------------------------
# Comments
# -----------------------------------------------------------------------------


@router.get("/{username}/projects/{project_id}/comments", response_model=list[Comment])
async def list_comments(username: str, project_id: int, directory: Directory) -> list[Comment]:
    """Comments on a project, oldest first."""
    portfolio = _resolve(directory, username)
    try:
        portfolio.projects.get(project_id)
    except PortfolimeError as e:
        raise _http_error(e) from e
    return portfolio.comments.list(project_id)


@router.post(
    "/{username}/projects/{project_id}/comments",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    username: str,
    project_id: int,
    request: CommentCreate,
    user: CurrentUser,
    directory: Directory,
) -> Comment:
    """Comment on a project as the signed-in user."""
    portfolio = _resolve(directory, username)
    try:
        portfolio.projects.get(project_id)
        return portfolio.comments.add(project_id, user, request.text)
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.delete(
    "/{username}/projects/{project_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_comment(
    username: str,
    project_id: int,
    comment_id: str,
    user: CurrentUser,
    directory: Directory,
) -> None:
    """Delete a comment as its author or the portfolio owner."""
    portfolio = _resolve(directory, username)
    try:
        portfolio.comments.delete(project_id, comment_id, user.uid, portfolio.owner_uid)
    except PortfolimeError as e:
        raise _http_error(e) from e


@router.post(
    "/{username}/projects/{project_id}/comments/{comment_id}/reply",
    response_model=Comment,
)
async def reply_to_comment(
    username: str,
    project_id: int,
    comment_id: str,
    request: CommentCreate,
    user: CurrentUser,
    directory: Directory,
) -> Comment:
    """Owner's reply to a comment."""
    portfolio = _resolve(directory, username)
    try:
        return portfolio.comments.reply(
            project_id, comment_id, request.text, user.uid, portfolio.owner_uid
        )
    except PortfolimeError as e:
        raise _http_error(e) from e
