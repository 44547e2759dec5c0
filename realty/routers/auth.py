import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import Annotated
from sqlalchemy.orm import Session

from realty.database import SessionLocal
from realty.limits import LOGIN_RATE_LIMIT, limiter
from realty.models.user import User
from realty.schemas.user import LoginRequest, Token, UserResponse
from realty.services.auth_service import (
    authenticate_user,
    create_access_token,
    get_current_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]
user_dependency = Annotated[dict, Depends(get_current_user)]


@router.post("/login", status_code=status.HTTP_200_OK)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(request: Request, credentials: LoginRequest, db: db_dependency):
    user = authenticate_user(credentials.email, credentials.password, db)
    if not user:
        logger.info("Failed login for %s", credentials.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    token = create_access_token(user.email, user.id, user.role.value)
    result = Token(
        token=token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )
    return {"success": True, "data": result.model_dump(mode="json")}


@router.get("/me", status_code=status.HTTP_200_OK)
async def me(db: db_dependency, current_user: user_dependency):
    user = db.query(User).filter(User.id == current_user.get("id")).first()
    if not user or not user.active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not authenticate user",
        )
    return {
        "success": True,
        "data": UserResponse.model_validate(user).model_dump(mode="json"),
    }


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(current_user: user_dependency):
    # Tokens are stateless; the client drops its copy
    return {"success": True, "message": "Logged out"}
