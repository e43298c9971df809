import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

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

UNIQUE_VIOLATION = "23505"
NEWEST_FIRST = (col(Article.created_at).desc(), col(Article.id).desc())


def _is_unique_violation(error: IntegrityError) -> bool:
    # psycopg exposes the SQLSTATE, sqlite only a message
    if getattr(error.orig, "sqlstate", None) == UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(error.orig)


class DatabaseStorage(Storage):
    """
    Storage backed by a SQLModel session.

    Every write commits. Uniqueness and cascading deletes are enforced by the
    database schema, aggregates are computed with grouped count queries.
    """

    def __init__(self, session: Session):
        self.session = session

    def _save(self, obj: Any) -> Any:
        self.session.add(obj)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if not _is_unique_violation(e):
                raise
            raise DuplicateError(str(e.orig)) from e
        self.session.refresh(obj)
        return obj

    def _count(self, statement) -> int:
        return int(self.session.exec(statement).one())

    # Users

    def get_user(self, id: int) -> User | None:
        return self.session.get(User, id)

    def get_user_by_username(self, username: str) -> User | None:
        return self.session.exec(select(User).where(User.username == username)).first()

    def get_user_by_email(self, email: str) -> User | None:
        return self.session.exec(select(User).where(User.email == email)).first()

    def _check_unique_user(self, username: str | None, email: str | None, exclude_id: int | None = None) -> None:
        if username is not None:
            existing = self.get_user_by_username(username)
            if existing and existing.id != exclude_id:
                raise DuplicateError("Username already exists")
        if email is not None:
            existing = self.get_user_by_email(email)
            if existing and existing.id != exclude_id:
                raise DuplicateError("Email already registered")

    def create_user(self, user_create: UserCreate) -> User:
        self._check_unique_user(user_create.username, user_create.email)
        return self._save(User.model_validate(user_create))

    def update_user(self, id: int, data: dict[str, Any]) -> User | None:
        db_user = self.session.get(User, id)
        if not db_user:
            return None
        self._check_unique_user(data.get("username"), data.get("email"), exclude_id=id)
        db_user.sqlmodel_update(data)
        return self._save(db_user)

    def get_user_profile(self, user_id: int, viewer_id: int | None = None) -> UserProfile | None:
        user = self.session.get(User, user_id)
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
        db_article = Article.model_validate(
            article_in.model_dump(exclude={"tags"}), update={"author_id": author_id}
        )
        return self._save(db_article)

    def get_article_row(self, id: int) -> Article | None:
        return self.session.get(Article, id)

    def _views(self, articles: list[Article], viewer_id: int | None) -> list[ArticleView]:
        """Aggregate authors, tags, counts and viewer state for a page of articles."""
        if not articles:
            return []
        ids = [a.id for a in articles]

        author_ids = {a.author_id for a in articles}
        authors = {
            u.id: u for u in self.session.exec(select(User).where(col(User.id).in_(author_ids)))
        }

        tags: dict[int, list[Tag]] = {id: [] for id in ids}
        tag_rows = self.session.exec(
            select(ArticleTag.article_id, Tag)
            .join(Tag, col(Tag.id) == ArticleTag.tag_id)
            .where(col(ArticleTag.article_id).in_(ids))
            .order_by(func.lower(Tag.name))
        )
        for article_id, tag in tag_rows:
            tags[article_id].append(tag)

        like_counts = dict(
            self.session.exec(
                select(Like.article_id, func.count(col(Like.id)))
                .where(col(Like.article_id).in_(ids))
                .group_by(Like.article_id)
            ).all()
        )
        comment_counts = dict(
            self.session.exec(
                select(Comment.article_id, func.count(col(Comment.id)))
                .where(col(Comment.article_id).in_(ids))
                .group_by(Comment.article_id)
            ).all()
        )

        liked: set[int] = set()
        bookmarked: set[int] = set()
        if viewer_id:
            liked = set(
                self.session.exec(
                    select(Like.article_id).where(
                        Like.user_id == viewer_id, col(Like.article_id).in_(ids)
                    )
                ).all()
            )
            bookmarked = set(
                self.session.exec(
                    select(Bookmark.article_id).where(
                        Bookmark.user_id == viewer_id, col(Bookmark.article_id).in_(ids)
                    )
                ).all()
            )

        views = []
        for article in articles:
            author = authors.get(article.author_id)
            if not author:
                continue
            views.append(
                article_view(
                    article,
                    author=author,
                    tags=tags[article.id],
                    likes=like_counts.get(article.id, 0),
                    comments=comment_counts.get(article.id, 0),
                    is_liked=article.id in liked,
                    is_bookmarked=article.id in bookmarked,
                )
            )
        return views

    def get_article(self, id: int, viewer_id: int | None = None) -> ArticleView | None:
        article = self.session.get(Article, id)
        if not article:
            return None
        views = self._views([article], viewer_id)
        return views[0] if views else None

    def update_article(self, id: int, data: dict[str, Any]) -> Article | None:
        db_article = self.session.get(Article, id)
        if not db_article:
            return None
        db_article.sqlmodel_update(data, update={"updated_at": get_datetime_utc()})
        return self._save(db_article)

    def delete_article(self, id: int) -> bool:
        db_article = self.session.get(Article, id)
        if not db_article:
            return False
        # tag links, comments, likes and bookmarks go with it (ON DELETE CASCADE)
        self.session.delete(db_article)
        self.session.commit()
        return True

    def _filter_articles(self, statement, tag: str | None, author_id: int | None):
        if author_id is not None:
            statement = statement.where(Article.author_id == author_id)
        if tag:
            statement = (
                statement.join(ArticleTag, col(ArticleTag.article_id) == Article.id)
                .join(Tag, col(Tag.id) == ArticleTag.tag_id)
                .where(func.lower(Tag.name) == tag.strip().lower())
            )
        return statement

    def get_articles(
        self,
        *,
        limit: int = 10,
        offset: int = 0,
        tag: str | None = None,
        author_id: int | None = None,
        viewer_id: int | None = None,
    ) -> list[ArticleView]:
        statement = self._filter_articles(select(Article), tag, author_id)
        statement = statement.order_by(*NEWEST_FIRST).offset(offset).limit(limit)
        return self._views(list(self.session.exec(statement).all()), viewer_id)

    def count_articles(self, author_id: int | None = None) -> int:
        statement = self._filter_articles(
            select(func.count(col(Article.id))), None, author_id
        )
        return self._count(statement)

    def get_featured_articles(self, limit: int = 3, viewer_id: int | None = None) -> list[ArticleView]:
        like_count = func.count(col(Like.id)).label("like_count")
        statement = (
            select(Article, like_count)
            .join(Like, col(Like.article_id) == Article.id)
            .group_by(col(Article.id))
            .order_by(like_count.desc(), *NEWEST_FIRST)
            .limit(limit)
        )
        featured = [article for article, _ in self.session.exec(statement).all()]

        if len(featured) < limit:
            statement = select(Article).order_by(*NEWEST_FIRST)
            chosen = [a.id for a in featured]
            if chosen:
                statement = statement.where(col(Article.id).not_in(chosen))
            featured += self.session.exec(statement.limit(limit - len(featured))).all()

        return self._views(featured, viewer_id)

    # Tags

    def create_tag(self, name: str) -> Tag:
        cleaned = clean_tag_name(name)
        existing = self.get_tag_by_name(cleaned)
        if existing:
            return existing
        try:
            return self._save(Tag(name=cleaned))
        except DuplicateError:
            # created concurrently under the same name
            tag = self.get_tag_by_name(cleaned)
            if tag is None:
                raise
            return tag

    def get_tag_by_name(self, name: str) -> Tag | None:
        statement = select(Tag).where(func.lower(Tag.name) == name.strip().lower())
        return self.session.exec(statement).first()

    def get_all_tags(self) -> list[Tag]:
        return list(self.session.exec(select(Tag).order_by(func.lower(Tag.name))).all())

    def get_popular_tags(self, limit: int = 10) -> list[TagWithCount]:
        usage = func.count(col(ArticleTag.id)).label("usage")
        statement = (
            select(Tag, usage)
            .join(ArticleTag, col(ArticleTag.tag_id) == Tag.id)
            .group_by(col(Tag.id))
            .order_by(usage.desc(), func.lower(Tag.name))
            .limit(limit)
        )
        result = [
            TagWithCount(id=tag.id, name=tag.name, article_count=count)
            for tag, count in self.session.exec(statement).all()
        ]

        if len(result) < limit:
            statement = select(Tag).order_by(col(Tag.id))
            chosen = [t.id for t in result]
            if chosen:
                statement = statement.where(col(Tag.id).not_in(chosen))
            for tag in self.session.exec(statement.limit(limit - len(result))).all():
                result.append(TagWithCount(id=tag.id, name=tag.name, article_count=0))
        return result

    def add_tag_to_article(self, article_id: int, tag_id: int) -> None:
        existing = self.session.exec(
            select(ArticleTag).where(
                ArticleTag.article_id == article_id, ArticleTag.tag_id == tag_id
            )
        ).first()
        if not existing:
            self._save(ArticleTag(article_id=article_id, tag_id=tag_id))

    def remove_tag_from_article(self, article_id: int, tag_id: int) -> bool:
        existing = self.session.exec(
            select(ArticleTag).where(
                ArticleTag.article_id == article_id, ArticleTag.tag_id == tag_id
            )
        ).first()
        if not existing:
            return False
        self.session.delete(existing)
        self.session.commit()
        return True

    def get_tags_by_article_id(self, article_id: int) -> list[Tag]:
        statement = (
            select(Tag)
            .join(ArticleTag, col(ArticleTag.tag_id) == Tag.id)
            .where(ArticleTag.article_id == article_id)
            .order_by(func.lower(Tag.name))
        )
        return list(self.session.exec(statement).all())

    # Comments

    def create_comment(self, comment_in: CommentCreate, user_id: int, article_id: int) -> Comment:
        if comment_in.parent_id is not None:
            parent = self.session.get(Comment, comment_in.parent_id)
            if not parent or parent.article_id != article_id:
                raise ValueError("Parent comment does not belong to this article")
        db_comment = Comment.model_validate(
            comment_in, update={"user_id": user_id, "article_id": article_id}
        )
        return self._save(db_comment)

    def get_comment(self, id: int) -> Comment | None:
        return self.session.get(Comment, id)

    def get_comments_by_article_id(self, article_id: int) -> list[CommentView]:
        statement = (
            select(Comment, User)
            .join(User, col(User.id) == Comment.user_id)
            .where(Comment.article_id == article_id)
            .order_by(col(Comment.created_at).desc(), col(Comment.id).desc())
        )
        return [
            comment_view(comment, author=author)
            for comment, author in self.session.exec(statement).all()
        ]

    def delete_comment(self, id: int) -> bool:
        db_comment = self.session.get(Comment, id)
        if not db_comment:
            return False
        # replies cascade through parent_id
        self.session.delete(db_comment)
        self.session.commit()
        return True

    # Likes

    def _like(self, user_id: int, article_id: int) -> Like | None:
        return self.session.exec(
            select(Like).where(Like.user_id == user_id, Like.article_id == article_id)
        ).first()

    def like_article(self, user_id: int, article_id: int) -> None:
        if self._like(user_id, article_id):
            return
        try:
            self._save(Like(user_id=user_id, article_id=article_id))
        except DuplicateError:
            logger.debug("Like by user %s on article %s already recorded", user_id, article_id)

    def unlike_article(self, user_id: int, article_id: int) -> bool:
        like = self._like(user_id, article_id)
        if not like:
            return False
        self.session.delete(like)
        self.session.commit()
        return True

    def is_article_liked(self, user_id: int, article_id: int) -> bool:
        return self._like(user_id, article_id) is not None

    def get_like_count(self, article_id: int) -> int:
        return self._count(
            select(func.count(col(Like.id))).where(Like.article_id == article_id)
        )

    # Follows

    def _follow(self, follower_id: int, following_id: int) -> Follow | None:
        return self.session.exec(
            select(Follow).where(
                Follow.follower_id == follower_id, Follow.following_id == following_id
            )
        ).first()

    def follow_user(self, follower_id: int, following_id: int) -> None:
        if follower_id == following_id:
            raise ValueError("You cannot follow yourself")
        if self._follow(follower_id, following_id):
            return
        try:
            self._save(Follow(follower_id=follower_id, following_id=following_id))
        except DuplicateError:
            logger.debug("User %s already follows %s", follower_id, following_id)

    def unfollow_user(self, follower_id: int, following_id: int) -> bool:
        follow = self._follow(follower_id, following_id)
        if not follow:
            return False
        self.session.delete(follow)
        self.session.commit()
        return True

    def is_following(self, follower_id: int, following_id: int) -> bool:
        return self._follow(follower_id, following_id) is not None

    def get_follower_count(self, user_id: int) -> int:
        return self._count(
            select(func.count(col(Follow.id))).where(Follow.following_id == user_id)
        )

    def get_following_count(self, user_id: int) -> int:
        return self._count(
            select(func.count(col(Follow.id))).where(Follow.follower_id == user_id)
        )

    def get_followers(self, user_id: int) -> list[User]:
        statement = (
            select(User)
            .join(Follow, col(Follow.follower_id) == User.id)
            .where(Follow.following_id == user_id)
            .order_by(col(Follow.id))
        )
        return list(self.session.exec(statement).all())

    def get_following(self, user_id: int) -> list[User]:
        statement = (
            select(User)
            .join(Follow, col(Follow.following_id) == User.id)
            .where(Follow.follower_id == user_id)
            .order_by(col(Follow.id))
        )
        return list(self.session.exec(statement).all())

    def get_popular_authors(self, limit: int = 5, viewer_id: int | None = None) -> list[UserProfile]:
        followers = func.count(col(Follow.id)).label("followers")
        statement = (
            select(User, followers)
            .join(Follow, col(Follow.following_id) == User.id)
            .group_by(col(User.id))
            .order_by(followers.desc(), col(User.id))
            .limit(limit)
        )
        authors = [user for user, _ in self.session.exec(statement).all()]

        if len(authors) < limit:
            statement = select(User).order_by(col(User.id))
            chosen = [u.id for u in authors]
            if chosen:
                statement = statement.where(col(User.id).not_in(chosen))
            authors += self.session.exec(statement.limit(limit - len(authors))).all()

        return [self._profile(user, viewer_id) for user in authors]

    # Bookmarks

    def _bookmark(self, user_id: int, article_id: int) -> Bookmark | None:
        return self.session.exec(
            select(Bookmark).where(
                Bookmark.user_id == user_id, Bookmark.article_id == article_id
            )
        ).first()

    def bookmark_article(self, user_id: int, article_id: int) -> None:
        if self._bookmark(user_id, article_id):
            return
        try:
            self._save(Bookmark(user_id=user_id, article_id=article_id))
        except DuplicateError:
            logger.debug("Bookmark by user %s on article %s already recorded", user_id, article_id)

    def unbookmark_article(self, user_id: int, article_id: int) -> bool:
        bookmark = self._bookmark(user_id, article_id)
        if not bookmark:
            return False
        self.session.delete(bookmark)
        self.session.commit()
        return True

    def is_article_bookmarked(self, user_id: int, article_id: int) -> bool:
        return self._bookmark(user_id, article_id) is not None

    def get_user_bookmarks(self, user_id: int) -> list[ArticleView]:
        statement = (
            select(Article)
            .join(Bookmark, col(Bookmark.article_id) == Article.id)
            .where(Bookmark.user_id == user_id)
            .order_by(col(Bookmark.created_at).desc(), col(Bookmark.id).desc())
        )
        return self._views(list(self.session.exec(statement).all()), user_id)
