"""Process-wide session store.

Wraps the identity gateway and holds the single ``SessionState`` snapshot.
The only writers are the gateway subscription callback and ``sign_out``.
"""

import logging
from typing import Awaitable, Callable, TypeVar

from portfolime.exceptions import (
    CredentialError,
    CredentialReason,
    PortfolimeError,
    ProviderAuthError,
    ProviderAuthReason,
)
from portfolime.models.identity import ProviderKind, SessionState, UserIdentity
from portfolime.services.identity_gateway import IdentityGateway, Unsubscribe

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionState], None]

T = TypeVar("T")


class SessionStore:
    """Canonical "who is logged in" for this process.

    ``subscribe()`` must be called once at startup and ``close()`` once at
    shutdown. Until the first identity-change notification arrives,
    ``ready`` is False and identity-dependent UI must not render.
    """

    def __init__(self, gateway: IdentityGateway) -> None:
        self._gateway = gateway
        self._state = SessionState()
        self._listeners: list[SessionListener] = []
        self._unsubscribe: Unsubscribe | None = None
        self._subscribed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def subscribe(self) -> None:
        """Register the long-lived identity-change listener with the gateway."""
        if self._subscribed:
            logger.warning("Session store already subscribed; ignoring")
            return
        self._subscribed = True
        self._unsubscribe = self._gateway.on_identity_change(self._on_identity_change)
        logger.info("Session store subscribed to identity changes")

    def close(self) -> None:
        """Tear down the gateway subscription. Idempotent."""
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        logger.info("Session store unsubscribed from identity changes")

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current(self) -> UserIdentity | None:
        return self._state.current

    @property
    def ready(self) -> bool:
        return self._state.ready

    @property
    def display_identity(self) -> str:
        user = self._state.current
        return user.display_identity if user else ""

    def is_owner(self, uid: str | None) -> bool:
        """True when the signed-in user owns the namespace ``uid``."""
        user = self._state.current
        return bool(user and uid and user.uid == uid)

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Notify ``listener`` after every state replacement.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def sign_in_with_provider(self, kind: ProviderKind) -> UserIdentity:
        """Sign in through the popup flow of ``kind``.

        Raises:
            ProviderAuthError: popup dismissed or provider rejected. The
                session state is left untouched.
        """
        if not kind.is_popup:
            raise ProviderAuthError(kind, ProviderAuthReason.UNSUPPORTED_PROVIDER)

        logger.info(f"Starting {kind.label} popup sign-in")
        try:
            return await self._gateway.sign_in_with_popup(kind)
        except ProviderAuthError as e:
            logger.info(f"{kind.label} sign-in failed: {e.reason.value}")
            raise
        except PortfolimeError:
            raise
        except Exception as e:
            logger.exception(f"{kind.label} sign-in raised unexpectedly")
            raise ProviderAuthError(kind, ProviderAuthReason.REJECTED, str(e)) from e

    async def sign_up(self, email: str, password: str) -> UserIdentity:
        """Create an email/password account."""
        _require(email, "email")
        _require(password, "password")
        return await self._credential_call(
            "sign-up", lambda: self._gateway.create_account(email.strip(), password)
        )

    async def log_in(self, email: str, password: str) -> UserIdentity:
        """Sign in with email and password."""
        _require(email, "email")
        _require(password, "password")
        return await self._credential_call(
            "log-in", lambda: self._gateway.sign_in(email.strip(), password)
        )

    async def reset_password(self, email: str) -> None:
        """Ask the provider to email a password reset link."""
        _require(email, "email")
        await self._credential_call(
            "password reset", lambda: self._gateway.send_password_reset(email.strip())
        )

    async def sign_out(self) -> None:
        """Sign out and clear the current identity.

        Raises:
            CredentialError: The gateway failed; the session is left as it was
        """
        await self._credential_call("sign-out", self._gateway.sign_out)
        self._replace(SessionState(current=None, ready=self._state.ready))
        logger.info("Signed out")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _credential_call(self, action: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except CredentialError as e:
            logger.info(f"{action} rejected: {e.reason.value}")
            raise
        except PortfolimeError:
            raise
        except Exception as e:
            logger.exception(f"{action} raised unexpectedly")
            raise CredentialError(CredentialReason.UNKNOWN, message=str(e)) from e

    def _on_identity_change(self, identity: UserIdentity | None) -> None:
        self._replace(SessionState(current=identity, ready=True))
        who = identity.uid if identity else "nobody"
        logger.debug(f"Identity changed: {who}")

    def _replace(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session listener failed")


def _require(value: str | None, field: str) -> None:
    if not value or not value.strip():
        raise CredentialError(
            CredentialReason.MISSING_FIELD,
            field=field,
            message=f"Please enter your {field}",
        )
