import logging
from datetime import timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm

from blogspace import crud
from blogspace.api.deps import CurrentUser, StorageDep
from blogspace.core import security
from blogspace.core.config import settings
from blogspace.models import Message, Token, UserPublic, UserRegister
from blogspace.storage.base import DuplicateError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserPublic, status_code=201)
def register(storage: StorageDep, user_in: UserRegister) -> Any:
    """
    Create a new account.
    """
    try:
        user = crud.register_user(storage=storage, user_in=user_in)
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("Registered user %s", user.id)
    return user


@router.post("/login/access-token")
def login_access_token(
    storage: StorageDep, form_data: Annotated[OAuth2PasswordRequestForm, Depends()]
) -> Token:
    """
    OAuth2 compatible token login, get an access token for future requests
    """
    user = crud.authenticate(
        storage=storage, username=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(status_code=400, detail="Incorrect username or password")
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return Token(
        access_token=security.create_access_token(
            user.id, expires_delta=access_token_expires
        )
    )


@router.get("/user", response_model=UserPublic)
def read_current_user(current_user: CurrentUser) -> Any:
    return current_user


@router.post("/logout")
def logout(current_user: CurrentUser) -> Message:
    # tokens are stateless, the client drops its copy
    return Message(message="Logged out")
