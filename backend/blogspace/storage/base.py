from abc import ABC, abstractmethod
from typing import Any

from blogspace.models import (
    TAG_NAME_MAX_LENGTH,
    Article,
    ArticleCreate,
    ArticleView,
    Comment,
    CommentCreate,
    CommentView,
    Tag,
    TagWithCount,
    User,
    UserCreate,
    UserProfile,
)


class StorageError(Exception):
    """Base class for errors raised by a storage backend."""


class DuplicateError(StorageError):
    """A uniqueness constraint (username, email, ...) would be violated."""


def clean_tag_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Tag name must not be blank")
    if len(cleaned) > TAG_NAME_MAX_LENGTH:
        raise ValueError(
            f"Tag name must be at most {TAG_NAME_MAX_LENGTH} characters"
        )
    return cleaned


def normalize_tag_names(names: list[str]) -> list[str]:
    """
    Strip names, drop blanks and case-insensitive duplicates, keep order.
    Raises ``ValueError`` for a name longer than a tag may be.
    """
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        if not (name or "").strip():
            continue
        cleaned = clean_tag_name(name)
        if cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(cleaned)
    return result


class Storage(ABC):
    """
    Storage interface shared by the in-memory and database backends.

    Reads returning articles take an optional ``viewer_id``. When given, every
    ``ArticleView`` carries that user's like/bookmark state, otherwise both
    flags are False.
    """

    # Users
    @abstractmethod
    def get_user(self, id: int) -> User | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    def create_user(self, user_create: UserCreate) -> User: ...

    @abstractmethod
    def update_user(self, id: int, data: dict[str, Any]) -> User | None: ...

    @abstractmethod
    def get_user_profile(
        self, user_id: int, viewer_id: int | None = None
    ) -> UserProfile | None: ...

    # Articles
    @abstractmethod
    def create_article(self, article_in: ArticleCreate, author_id: int) -> Article: ...

    @abstractmethod
    def get_article_row(self, id: int) -> Article | None: ...

    @abstractmethod
    def get_article(
        self, id: int, viewer_id: int | None = None
    ) -> ArticleView | None: ...

    @abstractmethod
    def update_article(self, id: int, data: dict[str, Any]) -> Article | None: ...

    @abstractmethod
    def delete_article(self, id: int) -> bool: ...

    @abstractmethod
    def get_articles(
        self,
        *,
        limit: int = 10,
        offset: int = 0,
        tag: str | None = None,
        author_id: int | None = None,
        viewer_id: int | None = None,
    ) -> list[ArticleView]: ...

    @abstractmethod
    def count_articles(self, author_id: int | None = None) -> int: ...

    @abstractmethod
    def get_featured_articles(
        self, limit: int = 3, viewer_id: int | None = None
    ) -> list[ArticleView]: ...

    # Tags
    @abstractmethod
    def create_tag(self, name: str) -> Tag: ...

    @abstractmethod
    def get_tag_by_name(self, name: str) -> Tag | None: ...

    @abstractmethod
    def get_all_tags(self) -> list[Tag]: ...

    @abstractmethod
    def get_popular_tags(self, limit: int = 10) -> list[TagWithCount]: ...

    @abstractmethod
    def add_tag_to_article(self, article_id: int, tag_id: int) -> None: ...

    @abstractmethod
    def remove_tag_from_article(self, article_id: int, tag_id: int) -> bool: ...

    @abstractmethod
    def get_tags_by_article_id(self, article_id: int) -> list[Tag]: ...

    def set_article_tags(self, article_id: int, names: list[str]) -> list[Tag]:
        """Replace the article's tags with ``names``, creating missing tags."""
        wanted = normalize_tag_names(names)
        for tag in self.get_tags_by_article_id(article_id):
            self.remove_tag_from_article(article_id, tag.id)
        tags = [self.create_tag(name) for name in wanted]
        for tag in tags:
            self.add_tag_to_article(article_id, tag.id)
        return tags

    # Comments
    @abstractmethod
    def create_comment(
        self, comment_in: CommentCreate, user_id: int, article_id: int
    ) -> Comment: ...

    @abstractmethod
    def get_comment(self, id: int) -> Comment | None: ...

    @abstractmethod
    def get_comments_by_article_id(self, article_id: int) -> list[CommentView]: ...

    @abstractmethod
    def delete_comment(self, id: int) -> bool: ...

    # Likes
    @abstractmethod
    def like_article(self, user_id: int, article_id: int) -> None: ...

    @abstractmethod
    def unlike_article(self, user_id: int, article_id: int) -> bool: ...

    @abstractmethod
    def is_article_liked(self, user_id: int, article_id: int) -> bool: ...

    @abstractmethod
    def get_like_count(self, article_id: int) -> int: ...

    # Follows
    @abstractmethod
    def follow_user(self, follower_id: int, following_id: int) -> None: ...

    @abstractmethod
    def unfollow_user(self, follower_id: int, following_id: int) -> bool: ...

    @abstractmethod
    def is_following(self, follower_id: int, following_id: int) -> bool: ...

    @abstractmethod
    def get_follower_count(self, user_id: int) -> int: ...

    @abstractmethod
    def get_following_count(self, user_id: int) -> int: ...

    @abstractmethod
    def get_followers(self, user_id: int) -> list[User]: ...

    @abstractmethod
    def get_following(self, user_id: int) -> list[User]: ...

    @abstractmethod
    def get_popular_authors(
        self, limit: int = 5, viewer_id: int | None = None
    ) -> list[UserProfile]: ...

    # Bookmarks
    @abstractmethod
    def bookmark_article(self, user_id: int, article_id: int) -> None: ...

    @abstractmethod
    def unbookmark_article(self, user_id: int, article_id: int) -> bool: ...

    @abstractmethod
    def is_article_bookmarked(self, user_id: int, article_id: int) -> bool: ...

    @abstractmethod
    def get_user_bookmarks(self, user_id: int) -> list[ArticleView]: ...
