from datetime import timedelta

from blogspace.core.security import create_access_token
from blogspace.models import Article, ArticleCreate, User, UserCreate
from blogspace.storage.base import Storage


def make_user(storage: Storage, username: str, **extra) -> User:
    user_create = UserCreate(
        username=username,
        email=f"{username}@example.com",
        display_name=username.title(),
        hashed_password="not-a-real-hash",
        **extra,
    )
    return storage.create_user(user_create)


def make_article(
    storage: Storage, author: User, title: str = "Hello", tags: list[str] | None = None
) -> Article:
    article = storage.create_article(
        ArticleCreate(title=title, content=f"{title} body text"), author.id
    )
    if tags:
        storage.set_article_tags(article.id, tags)
    return article


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, expires_delta=timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}
