import pytest

from blogspace.storage.base import Storage, normalize_tag_names
from blogspace.storage.memory import MemStorage
from blogspace.tests.utils import make_article, make_user


def test_create_tag_is_get_or_create_case_insensitive(storage: Storage):
    tag = storage.create_tag("  Python ")
    again = storage.create_tag("PYTHON")

    assert tag.name == "Python"
    assert again.id == tag.id
    assert storage.get_tag_by_name("python").id == tag.id
    assert len(storage.get_all_tags()) == 1


def test_blank_tag_names_are_rejected(storage: Storage):
    with pytest.raises(ValueError):
        storage.create_tag("   ")


def test_all_tags_sorted_by_name(storage: Storage):
    for name in ["web", "AI", "css"]:
        storage.create_tag(name)
    assert [t.name for t in storage.get_all_tags()] == ["AI", "css", "web"]


def test_add_and_remove_tag_links(storage: Storage):
    alice = make_user(storage, "alice")
    article = make_article(storage, alice)
    tag = storage.create_tag("Python")

    storage.add_tag_to_article(article.id, tag.id)
    storage.add_tag_to_article(article.id, tag.id)
    assert [t.id for t in storage.get_tags_by_article_id(article.id)] == [tag.id]

    assert storage.remove_tag_from_article(article.id, tag.id) is True
    assert storage.remove_tag_from_article(article.id, tag.id) is False


def test_set_article_tags_replaces_existing_set(storage: Storage):
    alice = make_user(storage, "alice")
    article = make_article(storage, alice, tags=["Python", "Web"])

    storage.set_article_tags(article.id, ["web", "Data", "data", ""])

    assert [t.name for t in storage.get_tags_by_article_id(article.id)] == ["Data", "Web"]


def test_popular_tags_rank_by_usage_and_fill_with_unused(storage: Storage):
    alice = make_user(storage, "alice")
    make_article(storage, alice, "One", tags=["Python", "Web"])
    make_article(storage, alice, "Two", tags=["Python"])
    storage.create_tag("Misc")

    popular = storage.get_popular_tags(10)

    assert [(t.name, t.article_count) for t in popular] == [
        ("Python", 2),
        ("Web", 1),
        ("Misc", 0),
    ]
    assert [t.name for t in storage.get_popular_tags(1)] == ["Python"]


def test_normalize_tag_names_keeps_first_spelling():
    assert normalize_tag_names(["Go", " go ", "", "Rust"]) == ["Go", "Rust"]


def test_memory_storage_seeds_configured_tags():
    storage = MemStorage(seed_tags=["Programming", "Design"])
    assert [t.name for t in storage.get_all_tags()] == ["Design", "Programming"]


def test_overlong_tag_names_are_rejected(storage: Storage):
    alice = make_user(storage, "alice")
    article = make_article(storage, alice, tags=["Python"])

    with pytest.raises(ValueError):
        storage.create_tag("x" * 65)
    with pytest.raises(ValueError):
        storage.set_article_tags(article.id, ["Web", "x" * 65])

    assert storage.create_tag(" " + "y" * 64 + " ").name == "y" * 64
    # the rejected replacement leaves the existing tags in place
    assert [t.name for t in storage.get_tags_by_article_id(article.id)] == ["Python"]
    assert storage.get_tag_by_name("Web") is None
    assert storage.get_articles(limit=10)[0].tags[0].name == "Python"
