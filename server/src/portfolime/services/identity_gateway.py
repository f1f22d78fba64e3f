"""Identity gateway contract and an in-memory implementation.

The gateway is the external identity provider: popup sign-in, email/password
accounts, password reset, sign-out and an identity-change subscription.
The core only ever talks to it through ``IdentityGateway``.
"""

import asyncio
import hashlib
import logging
import re
import secrets
from dataclasses import dataclass, field
from typing import Callable, Protocol
from uuid import uuid4

from portfolime.exceptions import (
    CredentialError,
    ProviderAuthError,
    ProviderAuthReason,
)
from portfolime.models.identity import ProviderKind, UserIdentity

logger = logging.getLogger(__name__)

IdentityCallback = Callable[[UserIdentity | None], None]
Unsubscribe = Callable[[], None]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PBKDF2_ITERATIONS = 310_000


class IdentityGateway(Protocol):
    """Protocol for the external identity provider."""

    async def sign_in_with_popup(self, kind: ProviderKind) -> UserIdentity:
        """Run the popup flow for ``kind``."""
        ...

    async def create_account(self, email: str, password: str) -> UserIdentity:
        """Create an email/password account and sign it in."""
        ...

    async def sign_in(self, email: str, password: str) -> UserIdentity:
        """Sign in with email and password."""
        ...

    async def send_password_reset(self, email: str) -> None:
        """Send a password reset email."""
        ...

    async def sign_out(self) -> None:
        """Sign the current identity out."""
        ...

    def on_identity_change(self, callback: IdentityCallback) -> Unsubscribe:
        """Call ``callback`` whenever the authenticated identity changes."""
        ...


@dataclass
class _Account:
    uid: str
    email: str
    salt: str
    password_hash: str
    display_name: str | None = None


@dataclass
class LocalIdentityGateway:
    """In-memory identity gateway for local development and tests.

    Popup providers answer from accounts registered with
    ``register_provider_account``; a provider with no registered account
    behaves like a popup the user closed. Identity changes are delivered on
    the next event-loop turn, and every new subscriber gets one initial
    notification with the current identity.
    """

    min_password_length: int = 6
    sent_resets: list[str] = field(default_factory=list)
    _accounts: dict[str, _Account] = field(default_factory=dict, init=False)
    _provider_accounts: dict[ProviderKind, UserIdentity] = field(default_factory=dict, init=False)
    _listeners: list[IdentityCallback] = field(default_factory=list, init=False)
    _current: UserIdentity | None = field(default=None, init=False)

    @property
    def current(self) -> UserIdentity | None:
        return self._current

    def register_provider_account(self, kind: ProviderKind, identity: UserIdentity) -> None:
        """Make the popup for ``kind`` resolve to ``identity``."""
        if not kind.is_popup:
            raise ValueError(f"{kind.label} is not a popup provider")
        if kind.value not in identity.provider_ids:
            identity = identity.model_copy(
                update={
                    "provider_ids": (kind.value, *identity.provider_ids),
                    "providers": (kind, *identity.providers),
                }
            )
        self._provider_accounts[kind] = identity

    async def sign_in_with_popup(self, kind: ProviderKind) -> UserIdentity:
        await asyncio.sleep(0)
        identity = self._provider_accounts.get(kind)
        if identity is None:
            raise ProviderAuthError(kind, ProviderAuthReason.POPUP_CLOSED)
        if identity.email and identity.email.lower() in self._accounts:
            raise ProviderAuthError(
                kind, ProviderAuthReason.ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL
            )
        self._set_current(identity)
        return identity

    async def create_account(self, email: str, password: str) -> UserIdentity:
        await asyncio.sleep(0)
        key = self._check_email(email)
        if len(password) < self.min_password_length:
            raise CredentialError.from_provider_code(
                "auth/weak-password",
                f"Password should be at least {self.min_password_length} characters",
            )
        if key in self._accounts:
            raise CredentialError.from_provider_code(
                "auth/email-already-in-use", "Email already in use"
            )

        salt = secrets.token_hex(16)
        account = _Account(
            uid=uuid4().hex,
            email=email.strip(),
            salt=salt,
            password_hash=_hash_password(password, salt),
        )
        self._accounts[key] = account
        logger.info(f"Created account {account.uid}")

        identity = self._identity_for(account)
        self._set_current(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> UserIdentity:
        await asyncio.sleep(0)
        key = self._check_email(email)
        account = self._accounts.get(key)
        if account is None:
            raise CredentialError.from_provider_code("auth/user-not-found", "No account for this email")
        if not secrets.compare_digest(account.password_hash, _hash_password(password, account.salt)):
            raise CredentialError.from_provider_code("auth/wrong-password", "Wrong password")

        identity = self._identity_for(account)
        self._set_current(identity)
        return identity

    async def send_password_reset(self, email: str) -> None:
        await asyncio.sleep(0)
        key = self._check_email(email)
        if key not in self._accounts:
            raise CredentialError.from_provider_code("auth/user-not-found", "No account for this email")
        self.sent_resets.append(self._accounts[key].email)
        logger.info("Password reset email dispatched")

    async def sign_out(self) -> None:
        await asyncio.sleep(0)
        self._set_current(None)

    def expire_session(self) -> None:
        """Drop the current identity as if the provider session expired."""
        self._set_current(None)

    def on_identity_change(self, callback: IdentityCallback) -> Unsubscribe:
        self._listeners.append(callback)
        self._schedule(callback, self._current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current(self, identity: UserIdentity | None) -> None:
        self._current = identity
        for callback in list(self._listeners):
            self._schedule(callback, identity)

    def _schedule(self, callback: IdentityCallback, identity: UserIdentity | None) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to defer onto, deliver now
            self._deliver(callback, identity)
            return
        loop.call_soon(self._deliver, callback, identity)

    def _deliver(self, callback: IdentityCallback, identity: UserIdentity | None) -> None:
        if callback in self._listeners:
            callback(identity)

    def _check_email(self, email: str) -> str:
        email = (email or "").strip()
        if not _EMAIL_RE.match(email):
            raise CredentialError.from_provider_code("auth/invalid-email", "Malformed email address")
        return email.lower()

    def _identity_for(self, account: _Account) -> UserIdentity:
        return UserIdentity(
            uid=account.uid,
            email=account.email,
            display_name=account.display_name,
            provider_ids=(ProviderKind.PASSWORD.value,),
        )


def _hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt), _PBKDF2_ITERATIONS
    )
    return digest.hex()
