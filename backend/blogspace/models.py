from datetime import datetime, timezone
from typing import Annotated

from pydantic import EmailStr, StringConstraints
from sqlalchemy import DateTime, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


# Shared properties
class UserBase(SQLModel):
    username: str = Field(unique=True, index=True, min_length=3, max_length=50)
    email: EmailStr = Field(unique=True, index=True, max_length=255)
    display_name: str = Field(min_length=1, max_length=255)
    bio: str = Field(default="", max_length=2000)
    avatar: str = Field(default="", max_length=1024)


class UserRegister(SQLModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=8, max_length=128)
    display_name: str | None = Field(default=None, max_length=255)


# Internal creation payload, the password is already hashed
class UserCreate(UserBase):
    hashed_password: str
    is_admin: bool = False


# Properties to receive via API on update, all are optional
class UserUpdateMe(SQLModel):
    username: str | None = Field(default=None, min_length=3, max_length=50)
    email: EmailStr | None = Field(default=None, max_length=255)
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    bio: str | None = Field(default=None, max_length=2000)
    avatar: str | None = Field(default=None, max_length=1024)
    password: str | None = Field(default=None, min_length=8, max_length=128)


class UpdatePassword(SQLModel):
    current_password: str = Field(min_length=8, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


# Database model
class User(UserBase, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str
    is_admin: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


# Properties to return via API, never includes the password hash
class UserPublic(UserBase):
    id: int
    is_admin: bool = False
    created_at: datetime | None = None


class UserCounts(SQLModel):
    articles: int = 0
    followers: int = 0
    following: int = 0


class UserProfile(UserPublic):
    counts: UserCounts
    is_following: bool = False


# Generic message
class Message(SQLModel):
    message: str


# JSON payload containing access token
class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"


# Contents of JWT token
class TokenPayload(SQLModel):
    sub: str | None = None


class AvatarUpload(SQLModel):
    avatar: str


# Articles

TAG_NAME_MAX_LENGTH = 64
TagName = Annotated[
    str, StringConstraints(strip_whitespace=True, max_length=TAG_NAME_MAX_LENGTH)
]


class ArticleBase(SQLModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1, sa_type=Text)
    excerpt: str = Field(default="", max_length=1000)
    cover_image: str | None = Field(default=None, max_length=1024)
    read_time: int = Field(default=5, ge=1, le=600)  # minutes


class ArticleCreate(ArticleBase):
    tags: list[TagName] = Field(default_factory=list)


class ArticleUpdate(SQLModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    excerpt: str | None = Field(default=None, max_length=1000)
    cover_image: str | None = Field(default=None, max_length=1024)
    read_time: int | None = Field(default=None, ge=1, le=600)
    # None leaves the tags alone, a list replaces them
    tags: list[TagName] | None = None


class Article(ArticleBase, table=True):
    __tablename__ = "articles"

    id: int | None = Field(default=None, primary_key=True)
    author_id: int = Field(
        foreign_key="users.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


# Tags

class TagBase(SQLModel):
    name: str = Field(min_length=1, max_length=TAG_NAME_MAX_LENGTH)


class Tag(TagBase, table=True):
    __tablename__ = "tags"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(
        unique=True, index=True, min_length=1, max_length=TAG_NAME_MAX_LENGTH
    )


class TagPublic(TagBase):
    id: int


class TagWithCount(TagPublic):
    article_count: int = 0


class ArticleTag(SQLModel, table=True):
    __tablename__ = "article_tags"
    __table_args__ = (UniqueConstraint("article_id", "tag_id"),)

    id: int | None = Field(default=None, primary_key=True)
    article_id: int = Field(
        foreign_key="articles.id", nullable=False, ondelete="CASCADE", index=True
    )
    tag_id: int = Field(
        foreign_key="tags.id", nullable=False, ondelete="CASCADE", index=True
    )


# Comments

class CommentCreate(SQLModel):
    content: str = Field(min_length=1, max_length=5000)
    parent_id: int | None = None


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: int | None = Field(default=None, primary_key=True)
    content: str = Field(sa_type=Text)
    user_id: int = Field(foreign_key="users.id", nullable=False, ondelete="CASCADE")
    article_id: int = Field(
        foreign_key="articles.id", nullable=False, ondelete="CASCADE", index=True
    )
    parent_id: int | None = Field(
        default=None, foreign_key="comments.id", ondelete="CASCADE"
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class CommentView(SQLModel):
    id: int
    content: str
    user_id: int
    article_id: int
    parent_id: int | None = None
    created_at: datetime | None = None
    author: UserPublic


# Likes, bookmarks and follows

class Like(SQLModel, table=True):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("user_id", "article_id"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, ondelete="CASCADE")
    article_id: int = Field(
        foreign_key="articles.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class Bookmark(SQLModel, table=True):
    __tablename__ = "bookmarks"
    __table_args__ = (UniqueConstraint("user_id", "article_id"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        foreign_key="users.id", nullable=False, ondelete="CASCADE", index=True
    )
    article_id: int = Field(
        foreign_key="articles.id", nullable=False, ondelete="CASCADE"
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class Follow(SQLModel, table=True):
    __tablename__ = "follows"
    __table_args__ = (UniqueConstraint("follower_id", "following_id"),)

    id: int | None = Field(default=None, primary_key=True)
    follower_id: int = Field(
        foreign_key="users.id", nullable=False, ondelete="CASCADE", index=True
    )
    following_id: int = Field(
        foreign_key="users.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


# Denormalized article view returned by the API

class ArticleCounts(SQLModel):
    likes: int = 0
    comments: int = 0


class ArticleView(ArticleBase):
    id: int
    author_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    author: UserPublic
    tags: list[TagPublic] = []
    counts: ArticleCounts = ArticleCounts()
    is_liked: bool = False
    is_bookmarked: bool = False


class LikeStatus(SQLModel):
    liked: bool
    like_count: int


class BookmarkStatus(SQLModel):
    bookmarked: bool


class FollowStatus(SQLModel):
    following: bool
    follower_count: int


# AI helpers

class AIContentRequest(SQLModel):
    content: str


class AITextRequest(SQLModel):
    text: str


class SummaryResponse(SQLModel):
    summary: str


class RelatedTopicsResponse(SQLModel):
    topics: list[str] = []


class WritingAnalysis(SQLModel):
    score: float = Field(default=0, ge=0, le=10)
    feedback: str = "Analysis not available"
