from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response

from blogspace import crud
from blogspace.api.deps import CurrentUser, OptionalUser, StorageDep
from blogspace.models import (
    Article,
    ArticleCreate,
    ArticleUpdate,
    ArticleView,
    BookmarkStatus,
    CommentCreate,
    CommentView,
    LikeStatus,
    User,
)
from blogspace.storage.base import Storage
from blogspace.storage.views import comment_view

router = APIRouter()


def _viewer_id(user: User | None) -> int | None:
    return user.id if user else None


def _get_article_or_404(storage: Storage, id: int) -> Article:
    article = storage.get_article_row(id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article


def _get_own_article(storage: Storage, id: int, user: User, action: str) -> Article:
    article = _get_article_or_404(storage, id)
    if article.author_id != user.id:
        raise HTTPException(
            status_code=403, detail=f"You are not authorized to {action} this article"
        )
    return article


@router.get("/", response_model=list[ArticleView])
def read_articles(
    storage: StorageDep,
    current_user: OptionalUser,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    tag: str | None = None,
    author_id: int | None = None,
) -> Any:
    """
    Retrieve articles, newest first, optionally filtered by tag or author.
    """
    return storage.get_articles(
        limit=limit,
        offset=offset,
        tag=tag,
        author_id=author_id,
        viewer_id=_viewer_id(current_user),
    )


@router.get("/featured", response_model=list[ArticleView])
def read_featured_articles(
    storage: StorageDep,
    current_user: OptionalUser,
    limit: int = Query(default=3, ge=1, le=20),
) -> Any:
    """
    Most liked articles, topped up with the newest ones.
    """
    return storage.get_featured_articles(limit, viewer_id=_viewer_id(current_user))


@router.get("/{id}", response_model=ArticleView)
def read_article(id: int, storage: StorageDep, current_user: OptionalUser) -> Any:
    article = storage.get_article(id, viewer_id=_viewer_id(current_user))
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article


@router.post("/", response_model=ArticleView, status_code=201)
def create_article(
    *, storage: StorageDep, current_user: CurrentUser, article_in: ArticleCreate
) -> Any:
    try:
        article = crud.create_article(
            storage=storage, article_in=article_in, author_id=current_user.id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return storage.get_article(article.id, viewer_id=current_user.id)


@router.put("/{id}", response_model=ArticleView)
def update_article(
    *, id: int, storage: StorageDep, current_user: CurrentUser, article_in: ArticleUpdate
) -> Any:
    _get_own_article(storage, id, current_user, "update")
    try:
        crud.update_article(storage=storage, article_id=id, article_in=article_in)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return storage.get_article(id, viewer_id=current_user.id)


@router.delete("/{id}", status_code=204)
def delete_article(id: int, storage: StorageDep, current_user: CurrentUser) -> Response:
    _get_own_article(storage, id, current_user, "delete")
    storage.delete_article(id)
    return Response(status_code=204)


# Comments

@router.get("/{id}/comments", response_model=list[CommentView])
def read_article_comments(id: int, storage: StorageDep) -> Any:
    _get_article_or_404(storage, id)
    return storage.get_comments_by_article_id(id)


@router.post("/{id}/comments", response_model=CommentView, status_code=201)
def create_article_comment(
    *, id: int, storage: StorageDep, current_user: CurrentUser, comment_in: CommentCreate
) -> Any:
    _get_article_or_404(storage, id)
    try:
        comment = storage.create_comment(comment_in, current_user.id, id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return comment_view(comment, author=current_user)


# Likes

@router.post("/{id}/like", response_model=LikeStatus)
def like_article(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    _get_article_or_404(storage, id)
    storage.like_article(current_user.id, id)
    return LikeStatus(liked=True, like_count=storage.get_like_count(id))


@router.delete("/{id}/like", response_model=LikeStatus)
def unlike_article(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    _get_article_or_404(storage, id)
    storage.unlike_article(current_user.id, id)
    return LikeStatus(liked=False, like_count=storage.get_like_count(id))


# Bookmarks

@router.post("/{id}/bookmark", response_model=BookmarkStatus)
def bookmark_article(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    _get_article_or_404(storage, id)
    storage.bookmark_article(current_user.id, id)
    return BookmarkStatus(bookmarked=True)


@router.delete("/{id}/bookmark", response_model=BookmarkStatus)
def unbookmark_article(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    _get_article_or_404(storage, id)
    storage.unbookmark_article(current_user.id, id)
    return BookmarkStatus(bookmarked=False)
