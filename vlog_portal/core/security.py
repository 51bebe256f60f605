# vlog_portal/core/security.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from vlog_portal.core.config import settings
from vlog_portal.db.deps import get_db
from vlog_portal.models.revoked_token import RevokedToken
from vlog_portal.models.user import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/token", auto_error=False
)

TEACHER_ROLE = "teacher"


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    # jti lets a single token be revoked on sign-out
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Raises JWTError for a malformed, tampered or expired token."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if not payload.get("sub") or not payload.get("jti"):
        raise JWTError("token is missing required claims")
    return payload


def is_token_revoked(db: Session, jti: str) -> bool:
    return db.get(RevokedToken, jti) is not None


def revoke_token(db: Session, token: str) -> None:
    try:
        payload = decode_access_token(token)
    except JWTError:
        # already unusable
        return
    jti = payload["jti"]
    if is_token_revoked(db, jti):
        return
    db.add(RevokedToken(jti=jti))
    db.commit()


def resolve_token_user(db: Session, token: str) -> Optional[User]:
    try:
        payload = decode_access_token(token)
    except JWTError:
        return None
    if is_token_revoked(db, payload["jti"]):
        return None
    return db.query(User).filter(User.email == payload["sub"]).first()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    user = resolve_token_user(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Students submit anonymously; a bad token is treated as no token."""
    if not token:
        return None
    return resolve_token_user(db, token)


def get_current_teacher(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != TEACHER_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher access required",
        )
    return current_user
