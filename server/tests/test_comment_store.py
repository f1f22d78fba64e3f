"""Tests for per-project comment threads."""

import pytest

from portfolime.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from portfolime.manager.comment_store import CommentStore
from portfolime.models.identity import UserIdentity

OWNER = "owner-uid"


@pytest.fixture
def store() -> CommentStore:
    return CommentStore()


@pytest.fixture
def visitor() -> UserIdentity:
    return UserIdentity(uid="visitor-uid", email="v@example.com", provider_ids=("github.com",))


class TestComments:
    """Tests for posting, deleting and replying."""

    def test_add_and_list(self, store, visitor):
        first = store.add(1, visitor, " Nice work ")
        store.add(1, visitor, "Second")

        comments = store.list(1)

        assert [c.text for c in comments] == ["Nice work", "Second"]
        assert comments[0].id == first.id
        assert comments[0].author_name == "v@example.com"
        assert store.count(1) == 2
        assert store.counts() == {1: 2}

    def test_anonymous_rejected(self, store):
        with pytest.raises(PermissionDeniedError):
            store.add(1, None, "Hello")

    def test_blank_rejected(self, store, visitor):
        with pytest.raises(ValidationError):
            store.add(1, visitor, "   ")

    def test_author_can_delete(self, store, visitor):
        comment = store.add(1, visitor, "Oops")
        store.delete(1, comment.id, visitor.uid, OWNER)
        assert store.list(1) == []

    def test_owner_can_delete(self, store, visitor):
        comment = store.add(1, visitor, "Spam")
        store.delete(1, comment.id, OWNER, OWNER)
        assert store.count(1) == 0

    def test_stranger_cannot_delete(self, store, visitor):
        comment = store.add(1, visitor, "Mine")
        with pytest.raises(PermissionDeniedError):
            store.delete(1, comment.id, "stranger", OWNER)
        assert store.count(1) == 1

    def test_delete_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.delete(1, "nope", OWNER, OWNER)

    def test_owner_reply(self, store, visitor):
        comment = store.add(1, visitor, "Question?")

        replied = store.reply(1, comment.id, "Answer.", OWNER, OWNER)

        assert replied.reply.text == "Answer."
        assert store.list(1)[0].reply.text == "Answer."

    def test_only_owner_replies(self, store, visitor):
        comment = store.add(1, visitor, "Question?")
        with pytest.raises(PermissionDeniedError):
            store.reply(1, comment.id, "Me too", visitor.uid, OWNER)

    def test_drop_project(self, store, visitor):
        store.add(1, visitor, "Hello")
        store.add(2, visitor, "Hello")

        store.drop_project(1)

        assert store.list(1) == []
        assert store.counts() == {2: 1}
