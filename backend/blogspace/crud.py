from typing import Any

from blogspace.core.security import get_password_hash, verify_password
from blogspace.models import (
    Article,
    ArticleCreate,
    ArticleUpdate,
    User,
    UserCreate,
    UserRegister,
    UserUpdateMe,
)
from blogspace.storage.base import Storage, normalize_tag_names


def register_user(*, storage: Storage, user_in: UserRegister) -> User:
    user_create = UserCreate(
        username=user_in.username,
        email=user_in.email,
        display_name=user_in.display_name or user_in.username,
        hashed_password=get_password_hash(user_in.password),
    )
    return storage.create_user(user_create)


def update_user(*, storage: Storage, db_user: User, user_in: UserUpdateMe) -> Any:
    user_data = user_in.model_dump(exclude_unset=True, exclude_none=True)
    if "password" in user_data:
        password = user_data.pop("password")
        user_data["hashed_password"] = get_password_hash(password)
    return storage.update_user(db_user.id, user_data)


# Dummy hash to use for timing attack prevention when user is not found
# This is an Argon2 hash of a random password, used to ensure constant-time comparison
DUMMY_HASH = "$argon2id$v=19$m=65536,t=3,p=4$MjQyZWE1MzBjYjJlZTI0Yw$YTU4NGM5ZTZmYjE2NzZlZjY0ZWY3ZGRkY2U2OWFjNjk"


def authenticate(*, storage: Storage, username: str, password: str) -> User | None:
    # the login form accepts either the username or the email address
    db_user = storage.get_user_by_username(username) or storage.get_user_by_email(username)
    if not db_user:
        # Prevent timing attacks by running password verification even when user doesn't exist
        verify_password(password, DUMMY_HASH)
        return None
    verified, updated_password_hash = verify_password(password, db_user.hashed_password)
    if not verified:
        return None
    if updated_password_hash:
        db_user = storage.update_user(db_user.id, {"hashed_password": updated_password_hash})
    return db_user


def create_article(*, storage: Storage, article_in: ArticleCreate, author_id: int) -> Article:
    # tag names are checked before anything is written
    tag_names = normalize_tag_names(article_in.tags)
    article = storage.create_article(article_in, author_id)
    if tag_names:
        storage.set_article_tags(article.id, tag_names)
    return article


def update_article(*, storage: Storage, article_id: int, article_in: ArticleUpdate) -> Article | None:
    tag_names = None if article_in.tags is None else normalize_tag_names(article_in.tags)
    article_data = article_in.model_dump(exclude_unset=True, exclude={"tags"})
    # explicit nulls would blank NOT NULL columns
    article_data = {
        key: value for key, value in article_data.items()
        if value is not None or key == "cover_image"
    }
    article = storage.update_article(article_id, article_data)
    if article and tag_names is not None:
        storage.set_article_tags(article_id, tag_names)
    return article
