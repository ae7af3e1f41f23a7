# utils/tokenJWT.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User
from models.token import RevokedToken
from utils.errors import Unauthorized

# Authorization scheme; missing headers are reported by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)

# Generate a new JWT access token for the given user
def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(user.id),
        "role": user.role,
        "jti": uuid.uuid4().hex,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise Unauthorized()
    # Ensure subject and token id are present in the payload
    if payload.get("sub") is None or payload.get("jti") is None:
        raise Unauthorized()
    return payload

def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Not authenticated")
    payload = decode_access_token(credentials.credentials)
    revoked = db.query(RevokedToken).filter(RevokedToken.jti == payload["jti"]).first()
    if revoked:
        raise Unauthorized("Token has been revoked")
    return payload

# Retrieve the currently authenticated user based on the JWT token
def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> User:
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthorized()
    user = db.get(User, user_id)
    if user is None:
        raise Unauthorized()
    return user

# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if allowed_roles and current_user.role not in allowed_roles:
            raise Unauthorized(", ".join(allowed_roles).capitalize() + " role required")
        return current_user
    return _checker

admin_required = role_required("admin")
