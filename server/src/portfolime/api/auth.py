"""Session dependencies for the HTTP surface."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status

from portfolime.config import get_settings
from portfolime.manager.session_store import SessionStore
from portfolime.models.identity import UserIdentity
from portfolime.services.identity_gateway import IdentityGateway, LocalIdentityGateway

logger = logging.getLogger(__name__)

# Process-wide singletons, created once
_gateway: IdentityGateway | None = None
_session_store: SessionStore | None = None


def get_gateway() -> IdentityGateway:
    """Get or create the identity gateway instance."""
    global _gateway
    if _gateway is None:
        settings = get_settings()
        _gateway = LocalIdentityGateway(min_password_length=settings.min_password_length)
    return _gateway


def get_session_store() -> SessionStore:
    """Get or create the process-wide session store."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore(get_gateway())
    return _session_store


async def get_ready_session(
    session: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionStore:
    """Session store, once the first identity notification has arrived.

    Raises:
        HTTPException: 503 while the identity check is still pending
    """
    if not session.ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session not ready",
        )
    return session


async def get_current_user(
    session: Annotated[SessionStore, Depends(get_ready_session)],
) -> UserIdentity:
    """The signed-in user.

    Raises:
        HTTPException: 401 when nobody is signed in
    """
    user = session.current
    if user is None:
        logger.debug("Signed-in user required but nobody is signed in")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in required",
        )
    return user


# Type aliases for dependency injection
Session = Annotated[SessionStore, Depends(get_session_store)]
ReadySession = Annotated[SessionStore, Depends(get_ready_session)]
CurrentUser = Annotated[UserIdentity, Depends(get_current_user)]
