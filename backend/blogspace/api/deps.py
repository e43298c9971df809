import logging
from collections.abc import Generator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError
from sqlmodel import Session

from blogspace.core import security
from blogspace.core.config import settings
from blogspace.core.db import engine
from blogspace.models import TokenPayload, User
from blogspace.storage.base import Storage
from blogspace.storage.database import DatabaseStorage
from blogspace.storage.memory import MemStorage

logger = logging.getLogger(__name__)

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/login/access-token"
)
optional_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/login/access-token", auto_error=False
)

_memory_storage: MemStorage | None = None


def get_memory_storage() -> MemStorage:
    """Lazily creates the process-wide in-memory store."""
    global _memory_storage
    if _memory_storage is None:
        _memory_storage = MemStorage()
    return _memory_storage


def get_storage() -> Generator[Storage, None, None]:
    if settings.STORAGE_BACKEND == "memory":
        yield get_memory_storage()
        return
    with Session(engine) as session:
        yield DatabaseStorage(session)


StorageDep = Annotated[Storage, Depends(get_storage)]
TokenDep = Annotated[str, Depends(reusable_oauth2)]
OptionalTokenDep = Annotated[str | None, Depends(optional_oauth2)]


def _user_from_token(storage: Storage, token: str) -> User | None:
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[security.ALGORITHM]
        )
        token_data = TokenPayload(**payload)
    except (InvalidTokenError, ValidationError):
        return None
    if token_data.sub is None or not token_data.sub.isdigit():
        return None
    return storage.get_user(int(token_data.sub))


def get_current_user(storage: StorageDep, token: TokenDep) -> User:
    user = _user_from_token(storage, token)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(storage: StorageDep, token: OptionalTokenDep) -> User | None:
    """Resolves the caller when a valid token is sent, anonymous otherwise."""
    if not token:
        return None
    return _user_from_token(storage, token)


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
