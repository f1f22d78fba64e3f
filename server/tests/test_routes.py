"""Tests for the HTTP routes, called directly as coroutines."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import HTTPException

from portfolime.api import auth, routes
from portfolime.exceptions import (
    CredentialError,
    CredentialReason,
    GitHubTokenError,
    NotFoundError,
    PermissionDeniedError,
    ProviderAuthError,
    UsernameTakenError,
    ValidationError,
    WorkflowStateError,
)
from portfolime.manager.session_store import SessionStore
from portfolime.models.github import GitHubTokenRequest
from portfolime.models.identity import ProviderKind, UserIdentity
from portfolime.models.profile import CommentCreate, ProfileUpdate, SkillCreate
from portfolime.models.project import CriteriaUpdate, ProjectDraft, StatusFilter
from portfolime.models.session import ClaimRequest, CredentialsRequest, PasswordResetRequest
from portfolime.services.github_client import GitHubClient
from portfolime.services.identity_gateway import LocalIdentityGateway

OWNER = UserIdentity(uid="owner-uid", email="ada@example.com", display_name="Ada")
VISITOR = UserIdentity(uid="visitor-uid", email="bob@example.com", display_name="Bob")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module-level singletons between tests."""
    auth._gateway = None
    auth._session_store = None
    routes._directory = None
    routes._layouts = None
    routes._github = None
    yield
    auth._gateway = None
    auth._session_store = None
    routes._directory = None
    routes._layouts = None
    routes._github = None


@pytest.fixture
def gateway() -> LocalIdentityGateway:
    gateway = LocalIdentityGateway()
    gateway.register_provider_account(ProviderKind.GOOGLE, OWNER)
    gateway.register_provider_account(ProviderKind.GITHUB, VISITOR)
    return gateway


@pytest.fixture
def session(gateway) -> SessionStore:
    """Subscribed session store; with no running loop it is ready at once."""
    store = SessionStore(gateway)
    store.subscribe()
    return store


@pytest.fixture
def directory():
    directory = routes.get_directory()
    portfolio = directory.claim("ada", owner_uid=OWNER.uid, display_name="Ada")
    portfolio.projects.add(ProjectDraft(title="Portfolio Site", tags=["React"]))
    portfolio.projects.add(ProjectDraft(title="Finix", tags=["Java"]))
    return directory


async def _sign_in(session: SessionStore, kind: ProviderKind, settle) -> None:
    await routes.sign_in_with_provider(kind, session)
    await settle()


async def _editing_layout(session, directory, settle):
    await _sign_in(session, ProviderKind.GOOGLE, settle)
    layouts = routes.get_layout_registry()
    context = await routes.mount_layout("ada", session, directory, layouts)
    await routes.toggle_edit_mode("ada", context.layout_id, layouts)
    return context.layout_id, layouts


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestHttpError:
    """Tests for _http_error."""

    @pytest.mark.parametrize("exc,code", [
        (ValidationError("title", "Project title is required"), 422),
        (UsernameTakenError("ada"), 409),
        (CredentialError(CredentialReason.WRONG_PASSWORD, "password"), 400),
        (ProviderAuthError(ProviderKind.GITHUB), 401),
        (PermissionDeniedError("nope"), 403),
        (NotFoundError("Project", 3), 404),
        (WorkflowStateError("submit", "idle"), 409),
        (GitHubTokenError("HTTP 401"), 400),
    ])
    def test_status_codes(self, exc, code):
        assert routes._http_error(exc).status_code == code

    def test_credential_detail(self):
        error = routes._http_error(CredentialError(CredentialReason.WEAK_PASSWORD, "password"))
        assert error.detail["reason"] == "weak_password"
        assert error.detail["field"] == "password"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class TestSessionRoutes:
    """Tests for /session endpoints."""

    @pytest.mark.asyncio
    async def test_get_session(self, session, settle):
        response = await routes.get_session(session)
        assert response.ready is True
        assert response.user is None

        await _sign_in(session, ProviderKind.GOOGLE, settle)

        response = await routes.get_session(session)
        assert response.user.uid == OWNER.uid
        assert response.provider is ProviderKind.GOOGLE

    @pytest.mark.asyncio
    async def test_closed_popup(self, session):
        with pytest.raises(HTTPException) as exc_info:
            await routes.sign_in_with_provider(ProviderKind.TWITTER, session)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["reason"] == "popup_closed"

    @pytest.mark.asyncio
    async def test_sign_up_log_in_and_reset(self, session, gateway, settle):
        credentials = CredentialsRequest(email="new@example.com", password="secret-pw")

        created = await routes.sign_up(credentials, session)
        await routes.sign_out(session)
        user = await routes.log_in(credentials, session)
        await routes.reset_password(PasswordResetRequest(email="new@example.com"), session)
        await settle()

        assert user.uid == created.uid
        assert session.current.uid == created.uid
        assert gateway.sent_resets == ["new@example.com"]

    @pytest.mark.asyncio
    async def test_log_in_missing_password(self, session):
        with pytest.raises(HTTPException) as exc_info:
            await routes.log_in(CredentialsRequest(email="a@example.com", password=""), session)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["field"] == "password"

    @pytest.mark.asyncio
    async def test_sign_out(self, session, settle):
        await _sign_in(session, ProviderKind.GOOGLE, settle)

        await routes.sign_out(session)

        assert session.current is None
        assert session.ready is True

    @pytest.mark.asyncio
    async def test_sign_out_gateway_failure(self):
        gateway = MagicMock()
        gateway.sign_out = AsyncMock(side_effect=RuntimeError("network down"))
        store = SessionStore(gateway)

        with pytest.raises(HTTPException) as exc_info:
            await routes.sign_out(store)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["reason"] == "unknown"


# ---------------------------------------------------------------------------
# Portfolios and layouts
# ---------------------------------------------------------------------------


class TestPortfolioRoutes:
    """Tests for claiming portfolios and mounting layouts."""

    @pytest.mark.asyncio
    async def test_claim(self):
        directory = routes.get_directory()

        profile = await routes.claim_portfolio(ClaimRequest(username="ada"), OWNER, directory)

        assert profile.username == "ada"
        assert profile.display_name == "Ada"
        assert await routes.list_portfolios(directory) == ["ada"]

    @pytest.mark.asyncio
    async def test_claim_taken(self, directory):
        with pytest.raises(HTTPException) as exc_info:
            await routes.claim_portfolio(ClaimRequest(username="ada"), VISITOR, directory)
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_claim_invalid(self, directory):
        with pytest.raises(HTTPException) as exc_info:
            await routes.claim_portfolio(ClaimRequest(username="x"), VISITOR, directory)
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_mount_unknown_username(self, session):
        with pytest.raises(HTTPException) as exc_info:
            await routes.mount_layout(
                "ghost", session, routes.get_directory(), routes.get_layout_registry()
            )
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_visitor_cannot_toggle(self, session, directory, settle):
        await _sign_in(session, ProviderKind.GITHUB, settle)
        layouts = routes.get_layout_registry()
        context = await routes.mount_layout("ada", session, directory, layouts)

        with pytest.raises(HTTPException) as exc_info:
            await routes.toggle_edit_mode("ada", context.layout_id, layouts)

        assert exc_info.value.status_code == 403
        assert context.is_owner is False

    @pytest.mark.asyncio
    async def test_owner_toggles_and_unmounts(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        context = await routes.get_layout("ada", layout_id, layouts)
        assert context.is_edit_mode is True
        assert (await routes.health(layouts))["editing_layouts"] == 1

        await routes.unmount_layout("ada", layout_id, layouts)

        with pytest.raises(HTTPException) as exc_info:
            await routes.get_layout("ada", layout_id, layouts)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_layout_under_wrong_username(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        with pytest.raises(HTTPException) as exc_info:
            await routes.get_layout("bob", layout_id, layouts)
        assert exc_info.value.status_code == 404


# ---------------------------------------------------------------------------
# Project grid
# ---------------------------------------------------------------------------


class TestProjectRoutes:
    """Tests for listing and the modal workflow over HTTP."""

    @pytest.mark.asyncio
    async def test_list_and_filter(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        everything = await routes.list_projects("ada", layout_id, layouts)
        assert [p.title for p in everything.projects] == ["Finix", "Portfolio Site"]
        assert everything.is_edit_mode is True

        java = await routes.update_criteria(
            "ada", layout_id, CriteriaUpdate(search_text="JAVA"), layouts
        )
        assert [p.title for p in java.projects] == ["Finix"]
        assert java.total == 2

        completed = await routes.update_criteria(
            "ada",
            layout_id,
            CriteriaUpdate(search_text="", status=StatusFilter.COMPLETED),
            layouts,
        )
        assert completed.projects == []

    @pytest.mark.asyncio
    async def test_listing_leaves_criteria_alone(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)
        await routes.update_criteria("ada", layout_id, CriteriaUpdate(search_text="finix"), layouts)

        for _ in range(2):
            listing = await routes.list_projects("ada", layout_id, layouts)
            assert listing.criteria.search_text == "finix"
            assert [p.title for p in listing.projects] == ["Finix"]

        cleared = await routes.update_criteria(
            "ada", layout_id, CriteriaUpdate(search_text=""), layouts
        )
        assert cleared.criteria.status is StatusFilter.ALL
        assert len(cleared.projects) == 2

    @pytest.mark.asyncio
    async def test_comment_counts(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)
        await routes.add_comment("ada", 1, CommentCreate(text="Nice"), VISITOR, directory)
        await routes.add_comment("ada", 1, CommentCreate(text="Again"), VISITOR, directory)

        listing = await routes.list_projects("ada", layout_id, layouts)
        assert listing.comment_counts == {2: 0, 1: 2}

        java = await routes.update_criteria(
            "ada", layout_id, CriteriaUpdate(search_text="java"), layouts
        )
        assert java.comment_counts == {2: 0}

    @pytest.mark.asyncio
    async def test_add_project(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        defaults = await routes.open_add_form("ada", layout_id, layouts)
        project = await routes.submit_form(
            "ada", layout_id, defaults.model_copy(update={"title": "Weather CLI"}), layouts
        )

        assert project.id == 3
        listing = await routes.list_projects("ada", layout_id, layouts)
        assert listing.projects[0].title == "Weather CLI"

    @pytest.mark.asyncio
    async def test_submit_without_title_keeps_form(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)
        await routes.open_add_form("ada", layout_id, layouts)

        with pytest.raises(HTTPException) as exc_info:
            await routes.submit_form("ada", layout_id, ProjectDraft(), layouts)

        assert exc_info.value.status_code == 422
        await routes.cancel_form("ada", layout_id, layouts)

    @pytest.mark.asyncio
    async def test_edit_project(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        defaults = await routes.open_edit_form("ada", layout_id, 1, layouts)
        assert defaults.title == "Portfolio Site"

        project = await routes.submit_form(
            "ada", layout_id, defaults.model_copy(update={"title": "Portfolio v2"}), layouts
        )
        assert project.id == 1
        assert project.title == "Portfolio v2"

    @pytest.mark.asyncio
    async def test_open_form_read_only(self, session, directory, settle):
        await _sign_in(session, ProviderKind.GOOGLE, settle)
        layouts = routes.get_layout_registry()
        context = await routes.mount_layout("ada", session, directory, layouts)

        with pytest.raises(HTTPException) as exc_info:
            await routes.open_add_form("ada", context.layout_id, layouts)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_second_modal_conflicts(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)
        await routes.open_add_form("ada", layout_id, layouts)

        with pytest.raises(HTTPException) as exc_info:
            await routes.request_delete("ada", layout_id, 1, layouts)

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_delete_confirm_and_cancel(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        await routes.request_delete("ada", layout_id, 1, layouts)
        await routes.cancel_delete("ada", layout_id, layouts)
        assert len(directory.resolve("ada").projects) == 2

        await routes.request_delete("ada", layout_id, 1, layouts)
        result = await routes.confirm_delete("ada", layout_id, layouts)

        assert result == {"deleted": 1}
        assert [p.id for p in directory.resolve("ada").projects.list()] == [2]

    @pytest.mark.asyncio
    async def test_visibility(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        project = await routes.toggle_visibility("ada", layout_id, 2, layouts)

        assert project.hidden is True

    @pytest.mark.asyncio
    async def test_like(self, directory):
        project = await routes.toggle_like("ada", 1, VISITOR, directory)
        assert project.appreciation == 1

        project = await routes.toggle_like("ada", 1, VISITOR, directory)
        assert project.appreciation == 0

    @pytest.mark.asyncio
    async def test_like_missing_project(self, directory):
        with pytest.raises(HTTPException) as exc_info:
            await routes.toggle_like("ada", 99, VISITOR, directory)
        assert exc_info.value.status_code == 404


# ---------------------------------------------------------------------------
# Profile and comments
# ---------------------------------------------------------------------------


class TestProfileRoutes:
    """Tests for the identity card and skills panel."""

    @pytest.mark.asyncio
    async def test_profile_flow(self, session, directory, settle):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        response = await routes.update_profile(
            "ada", layout_id, ProfileUpdate(role="Engineer"), layouts
        )
        assert response.profile.role == "Engineer"

        response = await routes.add_skill("ada", layout_id, SkillCreate(skill="Rust"), layouts)
        assert response.skills == ["Rust", "Java", "React"]
        assert response.stats.projects_count == 2

        response = await routes.remove_skill("ada", layout_id, "Rust", layouts)
        assert response.skills == ["Java", "React"]

    @pytest.mark.asyncio
    async def test_profile_read_only(self, session, directory, settle):
        await _sign_in(session, ProviderKind.GITHUB, settle)
        layouts = routes.get_layout_registry()
        context = await routes.mount_layout("ada", session, directory, layouts)

        response = await routes.get_profile("ada", context.layout_id, layouts)
        assert response.is_edit_mode is False

        with pytest.raises(HTTPException) as exc_info:
            await routes.update_profile(
                "ada", context.layout_id, ProfileUpdate(role="Hacker"), layouts
            )
        assert exc_info.value.status_code == 403


class TestCommentRoutes:
    """Tests for comment threads."""

    @pytest.mark.asyncio
    async def test_comment_reply_delete(self, directory):
        comment = await routes.add_comment("ada", 1, CommentCreate(text="Nice"), VISITOR, directory)

        replied = await routes.reply_to_comment(
            "ada", 1, comment.id, CommentCreate(text="Thanks"), OWNER, directory
        )
        assert replied.reply.text == "Thanks"

        await routes.delete_comment("ada", 1, comment.id, OWNER, directory)
        assert await routes.list_comments("ada", 1, directory) == []

    @pytest.mark.asyncio
    async def test_visitor_cannot_reply(self, directory):
        comment = await routes.add_comment("ada", 1, CommentCreate(text="Nice"), VISITOR, directory)

        with pytest.raises(HTTPException) as exc_info:
            await routes.reply_to_comment(
                "ada", 1, comment.id, CommentCreate(text="Me"), VISITOR, directory
            )
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_comment_on_missing_project(self, directory):
        with pytest.raises(HTTPException) as exc_info:
            await routes.add_comment("ada", 42, CommentCreate(text="?"), VISITOR, directory)
        assert exc_info.value.status_code == 404


# ---------------------------------------------------------------------------
# GitHub import
# ---------------------------------------------------------------------------


def _github_api(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/users/ada/repos":
        return httpx.Response(200, json=[
            {"id": 7, "full_name": "ada/engine", "html_url": "https://github.com/ada/engine"},
        ])
    if path == "/user/orgs":
        return httpx.Response(200, json=[])
    if path == "/repos/ada/engine/languages":
        return httpx.Response(200, json={"Python": 900, "C": 100})
    if path == "/user":
        if request.headers.get("Authorization") != "token good":
            return httpx.Response(401, json={"message": "Bad credentials"})
        return httpx.Response(200, json={"login": "ada"})
    return httpx.Response(404)


class TestGitHubRoutes:
    """Tests for the owner's repository import endpoints."""

    @pytest.fixture
    def github(self) -> GitHubClient:
        return GitHubClient(transport=httpx.MockTransport(_github_api))

    @pytest.mark.asyncio
    async def test_list_repos_defaults_to_portfolio_username(self, session, directory, settle, github):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        repos = await routes.list_github_repos("ada", layout_id, layouts, github)

        assert [repo.name for repo in repos] == ["ada/engine"]

    @pytest.mark.asyncio
    async def test_languages(self, session, directory, settle, github):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        languages = await routes.list_github_languages(
            "ada", layout_id, "https://api.github.com/repos/ada/engine/languages", layouts, github
        )

        assert languages == ["Python", "C"]

    @pytest.mark.asyncio
    async def test_validate_token(self, session, directory, settle, github):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        result = await routes.validate_github_token(
            "ada", layout_id, GitHubTokenRequest(token="good"), layouts, github
        )
        assert result == {"login": "ada"}

        with pytest.raises(HTTPException) as exc_info:
            await routes.validate_github_token(
                "ada", layout_id, GitHubTokenRequest(token="bad"), layouts, github
            )
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_token_for_another_login(self, session, directory, settle, github):
        layout_id, layouts = await _editing_layout(session, directory, settle)

        with pytest.raises(HTTPException) as exc_info:
            await routes.validate_github_token(
                "ada",
                layout_id,
                GitHubTokenRequest(token="good", github_username="bob"),
                layouts,
                github,
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["owner"] == "ada"

    @pytest.mark.asyncio
    async def test_visitor_cannot_import(self, session, directory, settle, github):
        await _sign_in(session, ProviderKind.GITHUB, settle)
        layouts = routes.get_layout_registry()
        context = await routes.mount_layout("ada", session, directory, layouts)

        with pytest.raises(HTTPException) as exc_info:
            await routes.list_github_repos("ada", context.layout_id, layouts, github)

        assert exc_info.value.status_code == 403
