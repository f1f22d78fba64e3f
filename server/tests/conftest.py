"""Global test configuration for Portfolime."""

import asyncio
import os

import pytest

from portfolime.models.identity import ProviderKind, UserIdentity


@pytest.fixture(autouse=True, scope="session")
def _set_test_env_vars():
    """Set environment defaults for Settings validation.

    Only sets values that aren't already present, so real env vars take
    precedence.
    """
    defaults = {
        "MIN_PASSWORD_LENGTH": "6",
        "SEED_SAMPLE_PROJECTS": "false",
    }
    originals = {}
    for key, value in defaults.items():
        if key not in os.environ:
            os.environ[key] = value
            originals[key] = None
        else:
            originals[key] = os.environ[key]

    # Clear the lru_cache on get_settings so it picks up the new env vars
    from portfolime.config import get_settings
    get_settings.cache_clear()

    yield

    # Restore original env state
    for key, original in originals.items():
        if original is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original
    get_settings.cache_clear()


@pytest.fixture
def settle():
    """Let identity notifications queued on the event loop run."""

    async def _settle() -> None:
        for _ in range(3):
            await asyncio.sleep(0)

    return _settle


@pytest.fixture
def google_user() -> UserIdentity:
    return UserIdentity(
        uid="google-uid",
        email="ada@example.com",
        display_name="Ada Lovelace",
        provider_ids=(ProviderKind.GOOGLE.value,),
    )


@pytest.fixture
def twitter_user() -> UserIdentity:
    return UserIdentity(
        uid="twitter-uid",
        email="a@b.com",
        display_name="Alex",
        provider_ids=(ProviderKind.TWITTER.value,),
    )

