"""Identity card and skills panel state for one portfolio."""

import logging
from datetime import UTC, datetime

from portfolime.exceptions import ValidationError
from portfolime.manager.edit_mode import EditCapability
from portfolime.models.profile import Profile, ProfileUpdate

logger = logging.getLogger(__name__)


class ProfileStore:
    """Holds the portfolio profile.

    Every mutation takes the caller's edit capability and checks it itself,
    so a hidden button is never the only thing standing between a visitor
    and a write.
    """

    def __init__(self, profile: Profile) -> None:
        self._profile = profile.model_copy(deep=True)

    @property
    def profile(self) -> Profile:
        return self._profile.model_copy(deep=True)

    def update(self, changes: ProfileUpdate, edit_mode: EditCapability) -> Profile | None:
        """Apply the non-None fields of ``changes``. No-op when read-only."""
        if not edit_mode.is_edit_mode:
            logger.debug(f"Ignoring profile update for {self._profile.username}: read-only")
            return None
        fields = changes.model_dump(exclude_none=True)
        self._profile = self._profile.model_copy(
            update={**fields, "setup_complete": True}
        )
        logger.info(f"Updated profile {self._profile.username}: {sorted(fields)}")
        return self.profile

    def add_skill(self, skill: str, edit_mode: EditCapability) -> bool:
        """Append a skill. Returns True if the list changed."""
        if not edit_mode.is_edit_mode:
            logger.debug("Ignoring add skill: read-only")
            return False
        skill = skill.strip()
        if not skill:
            raise ValidationError("skill", "Skill name is required")
        if _find(self._profile.skills, skill) is not None:
            return False
        self._profile = self._profile.model_copy(
            update={"skills": [*self._profile.skills, skill]}
        )
        return True

    def remove_skill(self, skill: str, edit_mode: EditCapability) -> bool:
        """Remove a skill (case-insensitive). Returns True if the list changed."""
        if not edit_mode.is_edit_mode:
            logger.debug("Ignoring remove skill: read-only")
            return False
        index = _find(self._profile.skills, skill.strip())
        if index is None:
            return False
        skills = list(self._profile.skills)
        del skills[index]
        self._profile = self._profile.model_copy(update={"skills": skills})
        return True

    def skills_overview(self, project_skills: list[str]) -> list[str]:
        """Manual skills followed by project-derived ones, without duplicates."""
        merged = list(self._profile.skills)
        for skill in project_skills:
            if _find(merged, skill) is None:
                merged.append(skill)
        return merged

    def set_online(self, online: bool) -> None:
        """Record the owner's presence."""
        self._profile = self._profile.model_copy(
            update={"is_online": online, "last_seen": datetime.now(UTC)}
        )


def _find(skills: list[str], skill: str) -> int | None:
    needle = skill.lower()
    for index, existing in enumerate(skills):
        if existing.lower() == needle:
            return index
    return None
