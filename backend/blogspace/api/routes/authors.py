from typing import Any

from fastapi import APIRouter, Query

from blogspace.api.deps import OptionalUser, StorageDep
from blogspace.models import UserProfile

router = APIRouter()


@router.get("/popular", response_model=list[UserProfile])
def read_popular_authors(
    storage: StorageDep,
    current_user: OptionalUser,
    limit: int = Query(default=5, ge=1, le=50),
) -> Any:
    """
    Authors with the most followers, topped up with other members.
    """
    return storage.get_popular_authors(
        limit, viewer_id=current_user.id if current_user else None
    )
