import pytest

from blogspace.models import CommentCreate
from blogspace.storage.base import DuplicateError, Storage
from blogspace.tests.utils import make_article, make_user


def test_usernames_and_emails_are_unique(storage: Storage):
    make_user(storage, "alice")
    with pytest.raises(DuplicateError):
        make_user(storage, "alice")


def test_update_user_rejects_taken_username(storage: Storage):
    alice = make_user(storage, "alice")
    make_user(storage, "bob")

    with pytest.raises(DuplicateError):
        storage.update_user(alice.id, {"username": "bob"})

    updated = storage.update_user(alice.id, {"bio": "Writer", "username": "alice"})
    assert updated.bio == "Writer"
    assert storage.update_user(999, {"bio": "x"}) is None


def test_likes_are_idempotent(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    article = make_article(storage, alice)

    storage.like_article(bob.id, article.id)
    storage.like_article(bob.id, article.id)

    assert storage.get_like_count(article.id) == 1
    assert storage.is_article_liked(bob.id, article.id)
    assert storage.unlike_article(bob.id, article.id) is True
    assert storage.unlike_article(bob.id, article.id) is False
    assert storage.get_like_count(article.id) == 0


def test_bookmarks_listed_most_recent_first_with_owner_state(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    first = make_article(storage, alice, "First")
    second = make_article(storage, alice, "Second")
    storage.bookmark_article(bob.id, first.id)
    storage.bookmark_article(bob.id, second.id)
    storage.bookmark_article(bob.id, second.id)
    storage.like_article(bob.id, first.id)

    bookmarks = storage.get_user_bookmarks(bob.id)

    assert [a.id for a in bookmarks] == [second.id, first.id]
    assert all(a.is_bookmarked for a in bookmarks)
    assert [a.is_liked for a in bookmarks] == [False, True]
    assert storage.unbookmark_article(bob.id, first.id) is True
    assert not storage.is_article_bookmarked(bob.id, first.id)


def test_follow_counts_and_lists(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    carol = make_user(storage, "carol")

    storage.follow_user(bob.id, alice.id)
    storage.follow_user(carol.id, alice.id)
    storage.follow_user(carol.id, alice.id)

    assert storage.get_follower_count(alice.id) == 2
    assert storage.get_following_count(carol.id) == 1
    assert [u.username for u in storage.get_followers(alice.id)] == ["bob", "carol"]
    assert [u.username for u in storage.get_following(bob.id)] == ["alice"]
    assert storage.is_following(bob.id, alice.id)
    assert not storage.is_following(alice.id, bob.id)

    assert storage.unfollow_user(bob.id, alice.id) is True
    assert storage.unfollow_user(bob.id, alice.id) is False
    assert storage.get_follower_count(alice.id) == 1


def test_self_follow_is_rejected(storage: Storage):
    alice = make_user(storage, "alice")
    with pytest.raises(ValueError):
        storage.follow_user(alice.id, alice.id)


def test_user_profile_counts_and_follow_state(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    make_article(storage, alice, "One")
    make_article(storage, alice, "Two")
    storage.follow_user(bob.id, alice.id)
    storage.follow_user(alice.id, bob.id)

    profile = storage.get_user_profile(alice.id, viewer_id=bob.id)

    assert profile.username == "alice"
    assert profile.counts.articles == 2
    assert profile.counts.followers == 1
    assert profile.counts.following == 1
    assert profile.is_following is True
    assert storage.get_user_profile(alice.id).is_following is False
    assert storage.get_user_profile(999) is None
    assert "hashed_password" not in profile.model_dump()


def test_popular_authors_rank_by_followers_then_fill(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    carol = make_user(storage, "carol")
    storage.follow_user(alice.id, bob.id)
    storage.follow_user(carol.id, bob.id)
    storage.follow_user(alice.id, carol.id)

    authors = storage.get_popular_authors(5, viewer_id=alice.id)

    assert [a.username for a in authors] == ["bob", "carol", "alice"]
    assert [a.counts.followers for a in authors] == [2, 1, 0]
    assert [a.is_following for a in authors] == [True, True, False]
    assert [a.username for a in storage.get_popular_authors(1)] == ["bob"]


def test_comments_newest_first_with_author(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    article = make_article(storage, alice)
    first = storage.create_comment(CommentCreate(content="First"), bob.id, article.id)
    second = storage.create_comment(CommentCreate(content="Second"), alice.id, article.id)

    comments = storage.get_comments_by_article_id(article.id)

    assert [c.id for c in comments] == [second.id, first.id]
    assert [c.author.username for c in comments] == ["alice", "bob"]
    assert storage.get_comment(first.id).content == "First"


def test_replies_must_target_same_article_and_go_with_parent(storage: Storage):
    alice = make_user(storage, "alice")
    article = make_article(storage, alice, "One")
    other = make_article(storage, alice, "Two")
    parent = storage.create_comment(CommentCreate(content="Parent"), alice.id, article.id)
    reply = storage.create_comment(
        CommentCreate(content="Reply", parent_id=parent.id), alice.id, article.id
    )
    nested = storage.create_comment(
        CommentCreate(content="Nested", parent_id=reply.id), alice.id, article.id
    )

    with pytest.raises(ValueError):
        storage.create_comment(
            CommentCreate(content="Wrong", parent_id=parent.id), alice.id, other.id
        )

    assert storage.delete_comment(parent.id) is True
    assert storage.get_comment(reply.id) is None
    assert storage.get_comment(nested.id) is None
    assert storage.get_comments_by_article_id(article.id) == []
    assert storage.delete_comment(parent.id) is False
