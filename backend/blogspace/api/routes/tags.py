from typing import Any

from fastapi import APIRouter, Query

from blogspace.api.deps import StorageDep
from blogspace.models import TagPublic, TagWithCount

router = APIRouter()


@router.get("/", response_model=list[TagPublic])
def read_tags(storage: StorageDep) -> Any:
    return storage.get_all_tags()


@router.get("/popular", response_model=list[TagWithCount])
def read_popular_tags(
    storage: StorageDep, limit: int = Query(default=10, ge=1, le=100)
) -> Any:
    return storage.get_popular_tags(limit)
