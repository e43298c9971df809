from fastapi import APIRouter

from blogspace.api.routes import (
    ai,
    articles,
    authors,
    bookmarks,
    comments,
    login,
    tags,
    users,
    utils,
)

api_router = APIRouter()
api_router.include_router(login.router, tags=["login"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(authors.router, prefix="/authors", tags=["users"])
api_router.include_router(articles.router, prefix="/articles", tags=["articles"])
api_router.include_router(comments.router, prefix="/comments", tags=["comments"])
api_router.include_router(bookmarks.router, prefix="/bookmarks", tags=["bookmarks"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
api_router.include_router(ai.router, prefix="/ai", tags=["ai"])
api_router.include_router(utils.router, tags=["utils"])
