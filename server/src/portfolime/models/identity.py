"""Identity models for the signed-in user."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProviderKind(str, Enum):
    """Identity providers a user can authenticate through."""

    GOOGLE = "google.com"
    GITHUB = "github.com"
    TWITTER = "twitter.com"
    PASSWORD = "password"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def is_popup(self) -> bool:
        """Whether this provider signs in through a popup flow."""
        return self is not ProviderKind.PASSWORD

    @classmethod
    def from_provider_id(cls, provider_id: str) -> "ProviderKind | None":
        """Resolve a raw provider id, or None when it is not one we know."""
        try:
            return cls(provider_id)
        except ValueError:
            return None


_LABELS = {
    ProviderKind.GOOGLE: "Google",
    ProviderKind.GITHUB: "GitHub",
    ProviderKind.TWITTER: "Twitter",
    ProviderKind.PASSWORD: "Email",
}


class UserIdentity(BaseModel):
    """An authenticated user as reported by the identity gateway.

    ``providers`` is resolved from ``provider_ids`` once, at construction.
    """

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    provider_ids: tuple[str, ...] = ()
    providers: tuple[ProviderKind, ...] = Field(default=(), exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _resolve_providers(cls, data: Any) -> Any:
        if isinstance(data, dict):
            ids = tuple(data.get("provider_ids") or ())
            kinds = []
            for provider_id in ids:
                kind = ProviderKind.from_provider_id(provider_id)
                if kind is not None and kind not in kinds:
                    kinds.append(kind)
            data = {**data, "provider_ids": ids, "providers": tuple(kinds)}
        return data

    @property
    def primary_provider(self) -> ProviderKind | None:
        """The provider used for the on-screen provider icon."""
        return self.providers[0] if self.providers else None

    def has_provider(self, kind: ProviderKind) -> bool:
        return kind in self.providers

    @property
    def display_identity(self) -> str:
        """Name shown for this user in the header and profile card.

        Twitter does not reliably expose an email, so Twitter identities
        prefer the display name.
        """
        if self.has_provider(ProviderKind.TWITTER):
            return self.display_name or self.email or self.uid
        return self.email or self.display_name or self.uid


class SessionState(BaseModel):
    """Snapshot of who is logged in in this process."""

    model_config = ConfigDict(frozen=True)

    current: UserIdentity | None = None
    ready: bool = False

    @property
    def signed_in(self) -> bool:
        return self.current is not None
