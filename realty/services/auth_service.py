from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional
import logging
from fastapi import Depends, HTTPException
from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette import status
from sqlalchemy.orm import Session
from realty.config import settings
from realty.models.user import User, UserRole
from realty.utils.ids import generate_id
from fastapi.security import OAuth2PasswordBearer

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_bearer = OAuth2PasswordBearer(tokenUrl="auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    email: str, user_id: str, role: str, expires_delta: Optional[timedelta] = None
):
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    encode = {"sub": email, "id": user_id, "role": role}
    expires = datetime.now(timezone.utc) + expires_delta
    encode.update({"exp": expires})
    return jwt.encode(encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def authenticate_user(email: str, password: str, db: Session):
    user: User = db.query(User).filter(User.email == email).first()
    if not user:
        return False
    if not pwd_context.verify(password, user.password_hash):
        return False
    return user


def ensure_admin(db: Session, email: str, password: str, name: str) -> Optional[User]:
    """Create the first admin account when it doesn't exist yet."""
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return existing
    user = User(
        id=generate_id(),
        email=email,
        password_hash=get_password_hash(password),
        name=name,
        role=UserRole.ADMIN,
        active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created admin account %s", email)
    return user


async def get_current_user(token: Annotated[str, Depends(oauth2_bearer)]):
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        email: str = payload.get("sub")
        user_id: str = payload.get("id")
        role: str = payload.get("role")
        if not email or not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not authenticate user",
            )
        return {"email": email, "id": user_id, "role": role}
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not authenticate user",
        )
