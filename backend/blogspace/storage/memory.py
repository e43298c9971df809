import itertools
import logging
from typing import Any

from blogspace.core.config import settings
from blogspace.models import (
    Article,
    ArticleCreate,
    ArticleTag,
    ArticleView,
    Bookmark,
    Comment,
    CommentCreate,
    CommentView,
    Follow,
    Like,
    Tag,
    TagWithCount,
    User,
    UserCreate,
    UserProfile,
    get_datetime_utc,
)
from blogspace.storage.base import DuplicateError, Storage, clean_tag_name
from blogspace.storage.views import article_view, comment_view, user_profile

logger = logging.getLogger(__name__)


def _newest_first(rows: list[Any]) -> list[Any]:
    return sorted(rows, key=lambda row: (row.created_at, row.id), reverse=True)


class MemStorage(Storage):
    """Process-local storage backed by dicts. Cascades are applied by hand."""

    def __init__(self, seed_tags: list[str] | None = None):
        self.users: dict[int, User] = {}
        self.articles: dict[int, Article] = {}
        self.tags: dict[int, Tag] = {}
        self.article_tags: list[ArticleTag] = []
        self.comments: dict[int, Comment] = {}
        self.likes: dict[int, Like] = {}
        self.follows: list[Follow] = []
        self.bookmarks: list[Bookmark] = []

        self._ids = {
            name: itertools.count(1)
            for name in ("user", "article", "tag", "comment", "like", "bookmark", "follow")
        }

        for name in settings.SEED_TAGS if seed_tags is None else seed_tags:
            self.create_tag(name)

    def _next_id(self, entity: str) -> int:
        return next(self._ids[entity])

    # Users

    def get_user(self, id: int) -> User | None:
        return self.users.get(id)

    def get_user_by_username(self, username: str) -> User | None:
        return next((u for u in self.users.values() if u.username == username), None)

    def get_user_by_email(self, email: str) -> User | None:
        return next((u for u in self.users.values() if u.email == email), None)

    def _check_unique_user(self, username: str | None, email: str | None, exclude_id: int | None = None) -> None:
        for user in self.users.values():
            if user.id == exclude_id:
                continue
            if username is not None and user.username == username:
                raise DuplicateError("Username already exists")
            if email is not None and user.email == email:
                raise DuplicateError("Email already registered")

    def create_user(self, user_create: UserCreate) -> User:
        self._check_unique_user(user_create.username, user_create.email)
        user = User.model_validate(user_create, update={"id": self._next_id("user")})
        self.users[user.id] = user
        return user

    def update_user(self, id: int, data: dict[str, Any]) -> User | None:
        user = self.users.get(id)
        if not user:
            return None
        self._check_unique_user(data.get("username"), data.get("email"), exclude_id=id)
        user.sqlmodel_update(data)
        return user

    def get_user_profile(self, user_id: int, viewer_id: int | None = None) -> UserProfile | None:
        user = self.users.get(user_id)
        if not user:
            return None
        return self._profile(user, viewer_id)

    def _profile(self, user: User, viewer_id: int | None) -> UserProfile:
        return user_profile(
            user,
            articles=self.count_articles(author_id=user.id),
            followers=self.get_follower_count(user.id),
            following=self.get_following_count(user.id),
            is_following=bool(viewer_id) and self.is_following(viewer_id, user.id),
        )

    # Articles

    def create_article(self, article_in: ArticleCreate, author_id: int) -> Article:
        article = Article.model_validate(
            article_in.model_dump(exclude={"tags"}),
            update={"id": self._next_id("article"), "author_id": author_id},
        )
        self.articles[article.id] = article
        return article

    def get_article_row(self, id: int) -> Article | None:
        return self.articles.get(id)

    def _view(self, article: Article, viewer_id: int | None) -> ArticleView | None:
        author = self.users.get(article.author_id)
        if not author:
            return None
        return article_view(
            article,
            author=author,
            tags=self.get_tags_by_article_id(article.id),
            likes=self.get_like_count(article.id),
            comments=sum(1 for c in self.comments.values() if c.article_id == article.id),
            is_liked=bool(viewer_id) and self.is_article_liked(viewer_id, article.id),
            is_bookmarked=bool(viewer_id) and self.is_article_bookmarked(viewer_id, article.id),
        )

    def _views(self, articles: list[Article], viewer_id: int | None) -> list[ArticleView]:
        views = (self._view(article, viewer_id) for article in articles)
        return [view for view in views if view is not None]

    def get_article(self, id: int, viewer_id: int | None = None) -> ArticleView | None:
        article = self.articles.get(id)
        if not article:
            return None
        return self._view(article, viewer_id)

    def update_article(self, id: int, data: dict[str, Any]) -> Article | None:
        article = self.articles.get(id)
        if not article:
            return None
        article.sqlmodel_update(data, update={"updated_at": get_datetime_utc()})
        return article

    def delete_article(self, id: int) -> bool:
        if id not in self.articles:
            return False
        self.article_tags = [at for at in self.article_tags if at.article_id != id]
        self.comments = {k: c for k, c in self.comments.items() if c.article_id != id}
        self.likes = {k: like for k, like in self.likes.items() if like.article_id != id}
        self.bookmarks = [b for b in self.bookmarks if b.article_id != id]
        del self.articles[id]
        return True

    def _filtered_articles(self, tag: str | None, author_id: int | None) -> list[Article]:
        articles = list(self.articles.values())
        if author_id is not None:
            articles = [a for a in articles if a.author_id == author_id]
        if tag:
            matching = self.get_tag_by_name(tag)
            if not matching:
                return []
            tagged = {at.article_id for at in self.article_tags if at.tag_id == matching.id}
            articles = [a for a in articles if a.id in tagged]
        return articles

    def get_articles(
        self,
        *,
        limit: int = 10,
        offset: int = 0,
        tag: str | None = None,
        author_id: int | None = None,
        viewer_id: int | None = None,
    ) -> list[ArticleView]:
        articles = _newest_first(self._filtered_articles(tag, author_id))
        return self._views(articles[offset:offset + limit], viewer_id)

    def count_articles(self, author_id: int | None = None) -> int:
        return len(self._filtered_articles(None, author_id))

    def get_featured_articles(self, limit: int = 3, viewer_id: int | None = None) -> list[ArticleView]:
        liked = [a for a in _newest_first(list(self.articles.values())) if self.get_like_count(a.id) > 0]
        # stable sort keeps newest-first among equal like counts
        liked.sort(key=lambda a: self.get_like_count(a.id), reverse=True)
        featured = liked[:limit]
        if len(featured) < limit:
            chosen = {a.id for a in featured}
            rest = [a for a in _newest_first(list(self.articles.values())) if a.id not in chosen]
            featured += rest[:limit - len(featured)]
        return self._views(featured, viewer_id)

    # Tags

    def create_tag(self, name: str) -> Tag:
        cleaned = clean_tag_name(name)
        existing = self.get_tag_by_name(cleaned)
        if existing:
            return existing
        tag = Tag(id=self._next_id("tag"), name=cleaned)
        self.tags[tag.id] = tag
        return tag

    def get_tag_by_name(self, name: str) -> Tag | None:
        wanted = name.strip().lower()
        return next((t for t in self.tags.values() if t.name.lower() == wanted), None)

    def get_all_tags(self) -> list[Tag]:
        return sorted(self.tags.values(), key=lambda t: t.name.lower())

    def get_popular_tags(self, limit: int = 10) -> list[TagWithCount]:
        usage: dict[int, int] = {}
        for at in self.article_tags:
            usage[at.tag_id] = usage.get(at.tag_id, 0) + 1
        used = sorted(
            (t for t in self.tags.values() if usage.get(t.id)),
            key=lambda t: (-usage[t.id], t.name.lower()),
        )
        unused = sorted((t for t in self.tags.values() if not usage.get(t.id)), key=lambda t: t.id)
        return [
            TagWithCount(id=t.id, name=t.name, article_count=usage.get(t.id, 0))
            for t in (used + unused)[:limit]
        ]

    def add_tag_to_article(self, article_id: int, tag_id: int) -> None:
        exists = any(
            at.article_id == article_id and at.tag_id == tag_id for at in self.article_tags
        )
        if not exists:
            self.article_tags.append(ArticleTag(article_id=article_id, tag_id=tag_id))

    def remove_tag_from_article(self, article_id: int, tag_id: int) -> bool:
        before = len(self.article_tags)
        self.article_tags = [
            at for at in self.article_tags
            if not (at.article_id == article_id and at.tag_id == tag_id)
        ]
        return len(self.article_tags) < before

    def get_tags_by_article_id(self, article_id: int) -> list[Tag]:
        tags = [
            self.tags[at.tag_id]
            for at in self.article_tags
            if at.article_id == article_id and at.tag_id in self.tags
        ]
        return sorted(tags, key=lambda t: t.name.lower())

    # Comments

    def create_comment(self, comment_in: CommentCreate, user_id: int, article_id: int) -> Comment:
        if comment_in.parent_id is not None:
            parent = self.comments.get(comment_in.parent_id)
            if not parent or parent.article_id != article_id:
                raise ValueError("Parent comment does not belong to this article")
        comment = Comment.model_validate(
            comment_in,
            update={"id": self._next_id("comment"), "user_id": user_id, "article_id": article_id},
        )
        self.comments[comment.id] = comment
        return comment

    def get_comment(self, id: int) -> Comment | None:
        return self.comments.get(id)

    def get_comments_by_article_id(self, article_id: int) -> list[CommentView]:
        comments = _newest_first([c for c in self.comments.values() if c.article_id == article_id])
        return [
            comment_view(c, author=self.users[c.user_id])
            for c in comments
            if c.user_id in self.users
        ]

    def delete_comment(self, id: int) -> bool:
        if id not in self.comments:
            return False
        doomed = {id}
        # replies of replies go too
        while True:
            replies = {
                c.id for c in self.comments.values()
                if c.parent_id in doomed and c.id not in doomed
            }
            if not replies:
                break
            doomed |= replies
        self.comments = {k: c for k, c in self.comments.items() if k not in doomed}
        return True

    # Likes

    def like_article(self, user_id: int, article_id: int) -> None:
        if self.is_article_liked(user_id, article_id):
            return
        like = Like(id=self._next_id("like"), user_id=user_id, article_id=article_id)
        self.likes[like.id] = like

    def unlike_article(self, user_id: int, article_id: int) -> bool:
        for key, like in self.likes.items():
            if like.user_id == user_id and like.article_id == article_id:
                del self.likes[key]
                return True
        return False

    def is_article_liked(self, user_id: int, article_id: int) -> bool:
        return any(
            like.user_id == user_id and like.article_id == article_id
            for like in self.likes.values()
        )

    def get_like_count(self, article_id: int) -> int:
        return sum(1 for like in self.likes.values() if like.article_id == article_id)

    # Follows

    def follow_user(self, follower_id: int, following_id: int) -> None:
        if follower_id == following_id:
            raise ValueError("You cannot follow yourself")
        if self.is_following(follower_id, following_id):
            return
        self.follows.append(
            Follow(id=self._next_id("follow"), follower_id=follower_id, following_id=following_id)
        )

    def unfollow_user(self, follower_id: int, following_id: int) -> bool:
        before = len(self.follows)
        self.follows = [
            f for f in self.follows
            if not (f.follower_id == follower_id and f.following_id == following_id)
        ]
        return len(self.follows) < before

    def is_following(self, follower_id: int, following_id: int) -> bool:
        return any(
            f.follower_id == follower_id and f.following_id == following_id
            for f in self.follows
        )

    def get_follower_count(self, user_id: int) -> int:
        return sum(1 for f in self.follows if f.following_id == user_id)

    def get_following_count(self, user_id: int) -> int:
        return sum(1 for f in self.follows if f.follower_id == user_id)

    def get_followers(self, user_id: int) -> list[User]:
        return [
            self.users[f.follower_id]
            for f in self.follows
            if f.following_id == user_id and f.follower_id in self.users
        ]

    def get_following(self, user_id: int) -> list[User]:
        return [
            self.users[f.following_id]
            for f in self.follows
            if f.follower_id == user_id and f.following_id in self.users
        ]

    def get_popular_authors(self, limit: int = 5, viewer_id: int | None = None) -> list[UserProfile]:
        followed = sorted(
            (u for u in self.users.values() if self.get_follower_count(u.id) > 0),
            key=lambda u: (-self.get_follower_count(u.id), u.id),
        )
        others = sorted(
            (u for u in self.users.values() if self.get_follower_count(u.id) == 0),
            key=lambda u: u.id,
        )
        return [self._profile(u, viewer_id) for u in (followed + others)[:limit]]

    # Bookmarks

    def bookmark_article(self, user_id: int, article_id: int) -> None:
        if self.is_article_bookmarked(user_id, article_id):
            return
        self.bookmarks.append(
            Bookmark(id=self._next_id("bookmark"), user_id=user_id, article_id=article_id)
        )

    def unbookmark_article(self, user_id: int, article_id: int) -> bool:
        before = len(self.bookmarks)
        self.bookmarks = [
            b for b in self.bookmarks
            if not (b.user_id == user_id and b.article_id == article_id)
        ]
        return len(self.bookmarks) < before

    def is_article_bookmarked(self, user_id: int, article_id: int) -> bool:
        return any(b.user_id == user_id and b.article_id == article_id for b in self.bookmarks)

    def get_user_bookmarks(self, user_id: int) -> list[ArticleView]:
        bookmarks = _newest_first([b for b in self.bookmarks if b.user_id == user_id])
        articles = [self.articles[b.article_id] for b in bookmarks if b.article_id in self.articles]
        return self._views(articles, user_id)
