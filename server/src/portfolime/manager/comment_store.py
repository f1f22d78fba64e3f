"""Per-project comment threads."""

from __future__ import annotations

import logging

from portfolime.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from portfolime.models.identity import UserIdentity
from portfolime.models.profile import Comment, CommentReply

logger = logging.getLogger(__name__)


class CommentStore:
    """Comments keyed by project id, oldest first."""

    def __init__(self) -> None:
        self._threads: dict[int, list[Comment]] = {}

    def list(self, project_id: int) -> list[Comment]:
        return [c.model_copy(deep=True) for c in self._threads.get(project_id, [])]

    def count(self, project_id: int) -> int:
        return len(self._threads.get(project_id, []))

    def counts(self) -> dict[int, int]:
        return {pid: len(thread) for pid, thread in self._threads.items() if thread}

    def add(self, project_id: int, author: UserIdentity | None, text: str) -> Comment:
        """Post a comment as ``author``.

        Raises:
            PermissionDeniedError: If nobody is signed in
            ValidationError: If the text is blank
        """
        if author is None:
            raise PermissionDeniedError("Sign in to comment")
        text = text.strip()
        if not text:
            raise ValidationError("text", "Comment cannot be empty")

        comment = Comment(
            project_id=project_id,
            author_uid=author.uid,
            author_name=author.display_identity,
            text=text,
        )
        self._threads.setdefault(project_id, []).append(comment)
        logger.debug(f"Comment {comment.id} added to project {project_id}")
        return comment.model_copy(deep=True)

    def delete(self, project_id: int, comment_id: str, actor_uid: str | None, owner_uid: str) -> None:
        """Delete a comment. Allowed for its author and the portfolio owner."""
        thread, index = self._locate(project_id, comment_id)
        comment = thread[index]
        if actor_uid is None or actor_uid not in (comment.author_uid, owner_uid):
            raise PermissionDeniedError("Only the author or the owner can delete a comment")
        del thread[index]
        logger.debug(f"Comment {comment_id} deleted from project {project_id}")

    def reply(
        self,
        project_id: int,
        comment_id: str,
        text: str,
        actor_uid: str | None,
        owner_uid: str,
    ) -> Comment:
        """Attach (or replace) the owner's single reply to a comment."""
        if actor_uid != owner_uid:
            raise PermissionDeniedError("Only the owner can reply")
        text = text.strip()
        if not text:
            raise ValidationError("text", "Reply cannot be empty")
        thread, index = self._locate(project_id, comment_id)
        thread[index] = thread[index].model_copy(update={"reply": CommentReply(text=text)})
        return thread[index].model_copy(deep=True)

    def drop_project(self, project_id: int) -> None:
        """Forget the thread of a deleted project."""
        if self._threads.pop(project_id, None):
            logger.debug(f"Dropped comments of project {project_id}")

    def _locate(self, project_id: int, comment_id: str) -> tuple[list[Comment], int]:
        thread = self._threads.get(project_id, [])
        for index, comment in enumerate(thread):
            if comment.id == comment_id:
                return thread, index
        raise NotFoundError("Comment", comment_id)
