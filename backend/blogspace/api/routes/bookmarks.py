from typing import Any

from fastapi import APIRouter

from blogspace.api.deps import CurrentUser, StorageDep
from blogspace.models import ArticleView

router = APIRouter()


@router.get("/", response_model=list[ArticleView])
def read_bookmarks(storage: StorageDep, current_user: CurrentUser) -> Any:
    """
    The caller's bookmarked articles, most recently bookmarked first.
    """
    return storage.get_user_bookmarks(current_user.id)
