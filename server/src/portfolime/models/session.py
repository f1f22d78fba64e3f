"""Session and layout request/response contracts."""

from pydantic import BaseModel

from portfolime.models.identity import ProviderKind, SessionState, UserIdentity


class CredentialsRequest(BaseModel):
    """Email/password form for sign-up and log-in."""

    email: str
    password: str


class PasswordResetRequest(BaseModel):
    """Forgot-password form."""

    email: str


class SessionResponse(BaseModel):
    """Session snapshot as seen by the header and route guards."""

    ready: bool
    user: UserIdentity | None = None
    display_identity: str = ""
    provider: ProviderKind | None = None

    @classmethod
    def from_state(cls, state: SessionState) -> "SessionResponse":
        user = state.current
        return cls(
            ready=state.ready,
            user=user,
            display_identity=user.display_identity if user else "",
            provider=user.primary_provider if user else None,
        )


class ClaimRequest(BaseModel):
    """Onboarding: pick a username for the signed-in user."""

    username: str
    display_name: str | None = None


class OutletContext(BaseModel):
    """What a layout hands down to every nested view."""

    layout_id: str
    username: str
    owner_uid: str
    is_owner: bool
    is_edit_mode: bool
