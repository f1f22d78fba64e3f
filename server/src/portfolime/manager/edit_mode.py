"""Per-layout edit/view mode."""

import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

EditModeListener = Callable[[bool], None]


class EditCapability(Protocol):
    """Read-only view of edit mode handed to child views and stores."""

    @property
    def is_edit_mode(self) -> bool:
        ...


class EditModeController:
    """Boolean edit flag owned by exactly one mounted layout.

    Never shared between layouts and never persisted; a new layout starts in
    view mode.
    """

    def __init__(self) -> None:
        self._enabled = False
        self._listeners: list[EditModeListener] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_edit_mode(self) -> bool:
        return self._enabled

    def toggle(self) -> bool:
        """Flip the flag and return the new value."""
        self._set(not self._enabled)
        return self._enabled

    def disable(self) -> None:
        """Force view mode."""
        if self._enabled:
            self._set(False)

    def add_listener(self, listener: EditModeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set(self, enabled: bool) -> None:
        self._enabled = enabled
        logger.debug(f"Edit mode {'on' if enabled else 'off'}")
        for listener in list(self._listeners):
            try:
                listener(enabled)
            except Exception:
                logger.exception("Edit mode listener failed")
