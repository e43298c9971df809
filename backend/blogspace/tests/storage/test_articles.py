from blogspace.models import ArticleCreate, CommentCreate
from blogspace.storage.base import Storage
from blogspace.tests.utils import make_article, make_user


def test_create_and_get_article_aggregates_author_tags_and_counts(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    article = make_article(storage, alice, "First post", tags=["Python", "web"])
    storage.like_article(bob.id, article.id)
    storage.create_comment(CommentCreate(content="Nice"), bob.id, article.id)

    view = storage.get_article(article.id)

    assert view is not None
    assert view.title == "First post"
    assert view.author.username == "alice"
    assert [t.name for t in view.tags] == ["Python", "web"]
    assert view.counts.likes == 1
    assert view.counts.comments == 1
    assert view.is_liked is False
    assert view.is_bookmarked is False


def test_article_view_reports_viewer_state(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    article = make_article(storage, alice)
    storage.like_article(bob.id, article.id)
    storage.bookmark_article(bob.id, article.id)

    as_bob = storage.get_article(article.id, viewer_id=bob.id)
    as_alice = storage.get_article(article.id, viewer_id=alice.id)

    assert as_bob.is_liked and as_bob.is_bookmarked
    assert not as_alice.is_liked and not as_alice.is_bookmarked


def test_get_missing_article_returns_none(storage: Storage):
    assert storage.get_article(999) is None
    assert storage.get_article_row(999) is None
    assert storage.update_article(999, {"title": "x"}) is None
    assert storage.delete_article(999) is False


def test_articles_are_listed_newest_first_and_paginated(storage: Storage):
    alice = make_user(storage, "alice")
    ids = [make_article(storage, alice, f"Post {i}").id for i in range(5)]

    page = storage.get_articles(limit=2, offset=1)

    assert [a.id for a in page] == [ids[3], ids[2]]
    assert len(storage.get_articles()) == 5


def test_tag_filter_is_case_insensitive_and_applied_before_pagination(storage: Storage):
    alice = make_user(storage, "alice")
    tagged = [make_article(storage, alice, f"Tagged {i}", tags=["Python"]).id for i in range(3)]
    for i in range(4):
        make_article(storage, alice, f"Untagged {i}")

    page = storage.get_articles(limit=2, tag="python")

    assert [a.id for a in page] == [tagged[2], tagged[1]]
    assert storage.get_articles(tag="unknown") == []


def test_author_filter_and_count(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    make_article(storage, alice, "A1")
    make_article(storage, alice, "A2")
    make_article(storage, bob, "B1")

    assert {a.title for a in storage.get_articles(author_id=alice.id)} == {"A1", "A2"}
    assert storage.count_articles(author_id=alice.id) == 2
    assert storage.count_articles() == 3


def test_update_article_bumps_updated_at(storage: Storage):
    alice = make_user(storage, "alice")
    article = make_article(storage, alice, "Draft")
    before = storage.get_article_row(article.id).updated_at

    updated = storage.update_article(article.id, {"title": "Final", "read_time": 9})

    assert updated.title == "Final"
    assert updated.read_time == 9
    assert updated.updated_at >= before
    assert storage.get_article(article.id).title == "Final"


def test_delete_article_removes_dependent_rows(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    article = make_article(storage, alice, tags=["Python"])
    storage.like_article(bob.id, article.id)
    storage.bookmark_article(bob.id, article.id)
    storage.create_comment(CommentCreate(content="Hi"), bob.id, article.id)

    assert storage.delete_article(article.id) is True

    assert storage.get_article(article.id) is None
    assert storage.get_like_count(article.id) == 0
    assert storage.get_comments_by_article_id(article.id) == []
    assert storage.get_user_bookmarks(bob.id) == []
    assert storage.get_tags_by_article_id(article.id) == []
    # the tag itself survives
    assert storage.get_tag_by_name("python") is not None


def test_featured_articles_rank_by_likes_then_fill_with_newest(storage: Storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    carol = make_user(storage, "carol")
    first = make_article(storage, alice, "First")
    second = make_article(storage, alice, "Second")
    third = make_article(storage, alice, "Third")
    storage.like_article(bob.id, first.id)
    storage.like_article(carol.id, first.id)
    storage.like_article(bob.id, third.id)

    featured = storage.get_featured_articles(3)
    assert [a.id for a in featured] == [first.id, third.id, second.id]
    assert featured[0].counts.likes == 2

    assert [a.id for a in storage.get_featured_articles(2)] == [first.id, third.id]


def test_featured_articles_without_likes_are_newest(storage: Storage):
    alice = make_user(storage, "alice")
    ids = [make_article(storage, alice, f"Post {i}").id for i in range(4)]

    assert [a.id for a in storage.get_featured_articles(3)] == [ids[3], ids[2], ids[1]]


def test_create_article_ignores_tag_list(storage: Storage):
    alice = make_user(storage, "alice")
    article = storage.create_article(
        ArticleCreate(title="T", content="C", tags=["ignored"]), alice.id
    )
    assert storage.get_tags_by_article_id(article.id) == []
    assert article.read_time == 5
    assert article.excerpt == ""
