import logging
import re
import time
from pathlib import Path
from typing import Any

from fastapi import APIRouter, File, HTTPException, UploadFile

from blogspace import crud
from blogspace.api.deps import CurrentUser, OptionalUser, StorageDep
from blogspace.core.config import settings
from blogspace.core.security import verify_password
from blogspace.models import (
    AvatarUpload,
    FollowStatus,
    Message,
    UpdatePassword,
    User,
    UserProfile,
    UserPublic,
    UserUpdateMe,
)
from blogspace.storage.base import DuplicateError, Storage

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_user_or_404(storage: Storage, id: int) -> User:
    user = storage.get_user(id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _safe_filename(filename: str | None) -> str:
    name = Path(filename or "photo").name
    return re.sub(r"[^A-Za-z0-9._-]", "_", name) or "photo"


@router.post("/upload-photo", response_model=AvatarUpload)
async def upload_photo(
    *, storage: StorageDep, current_user: CurrentUser, photo: UploadFile = File(...)
) -> Any:
    """
    Store a new avatar image and point the caller's profile at it.
    """
    if not (photo.content_type or "").startswith("image/"):
        raise HTTPException(
            status_code=400, detail=f"Unsupported file type: {photo.content_type}"
        )
    # read at most one byte past the cap
    content = await photo.read(settings.MAX_AVATAR_BYTES + 1)
    if not content:
        raise HTTPException(status_code=400, detail="No photo uploaded")
    if len(content) > settings.MAX_AVATAR_BYTES:
        raise HTTPException(status_code=413, detail="Photo is too large")

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_name = f"{int(time.time() * 1000)}-{_safe_filename(photo.filename)}"
    (upload_dir / file_name).write_bytes(content)

    avatar_url = f"/uploads/{file_name}"
    storage.update_user(current_user.id, {"avatar": avatar_url})
    logger.info("User %s uploaded avatar %s", current_user.id, file_name)
    return AvatarUpload(avatar=avatar_url)


@router.patch("/me/password", response_model=Message)
def update_password_me(
    *, storage: StorageDep, body: UpdatePassword, current_user: CurrentUser
) -> Any:
    """
    Update own password.
    """
    verified, _ = verify_password(body.current_password, current_user.hashed_password)
    if not verified:
        raise HTTPException(status_code=400, detail="Incorrect password")
    if body.current_password == body.new_password:
        raise HTTPException(
            status_code=400, detail="New password cannot be the same as the current one"
        )
    crud.update_user(
        storage=storage,
        db_user=current_user,
        user_in=UserUpdateMe(password=body.new_password),
    )
    return Message(message="Password updated successfully")


@router.get("/{id}", response_model=UserProfile)
def read_user_profile(id: int, storage: StorageDep, current_user: OptionalUser) -> Any:
    """
    Public profile with article/follower counts and the caller's follow state.
    """
    profile = storage.get_user_profile(id, viewer_id=current_user.id if current_user else None)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.put("/{id}", response_model=UserPublic)
def update_user(
    *, id: int, storage: StorageDep, current_user: CurrentUser, user_in: UserUpdateMe
) -> Any:
    if id != current_user.id:
        raise HTTPException(status_code=403, detail="You can only update your own profile")
    try:
        user = crud.update_user(storage=storage, db_user=current_user, user_in=user_in)
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/{id}/followers", response_model=list[UserPublic])
def read_followers(id: int, storage: StorageDep) -> Any:
    _get_user_or_404(storage, id)
    return storage.get_followers(id)


@router.get("/{id}/following", response_model=list[UserPublic])
def read_following(id: int, storage: StorageDep) -> Any:
    _get_user_or_404(storage, id)
    return storage.get_following(id)


@router.post("/{id}/follow", response_model=FollowStatus)
def follow_user(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    if id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot follow yourself")
    _get_user_or_404(storage, id)
    storage.follow_user(current_user.id, id)
    return FollowStatus(following=True, follower_count=storage.get_follower_count(id))


@router.delete("/{id}/follow", response_model=FollowStatus)
def unfollow_user(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    _get_user_or_404(storage, id)
    storage.unfollow_user(current_user.id, id)
    return FollowStatus(following=False, follower_count=storage.get_follower_count(id))
