# backend/routes/auth.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, UserRole
from models.token import RevokedToken
from schemas.common import ApiResponse
from schemas import user as schemas
from utils.audit import write_log, client_ip
from utils.errors import BadRequest, Unauthorized, ValidationError
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import create_access_token, get_current_user, get_token_payload

router = APIRouter(tags=["Auth"])


def _email_taken(db: Session, email: str, exclude_id: int = None) -> bool:
    query = db.query(User).filter(func.lower(User.email) == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _auth_data(user: User) -> schemas.AuthData:
    return schemas.AuthData(user=schemas.UserResponse.model_validate(user), token=create_access_token(user))


# Register a new user
@router.post("/register", response_model=ApiResponse[schemas.AuthData], status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    # Normalize email input
    normalized_email = payload.email.strip().lower()

    if _email_taken(db, normalized_email):
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": normalized_email, "reason": "Email exists"})
        raise ValidationError.for_field("email", "The email has already been taken.")

    # Create new user instance with hashed password
    new_user = User(
        name=payload.name,
        email=normalized_email,
        password_hash=get_password_hash(payload.password),
        role=UserRole.USER.value,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    write_log(db, user_id=new_user.id, action="REGISTER", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": new_user.email})

    return {"message": "Registration successful", "data": _auth_data(new_user)}


# Authenticate user and issue JWT token
@router.post("/login", response_model=ApiResponse[schemas.AuthData])
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    db_user = db.query(User).filter(func.lower(User.email) == payload.email.strip().lower()).first()

    # Validate credentials and log failure on error
    if not db_user or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"email": payload.email})
        raise Unauthorized("Invalid credentials")

    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=client_ip(request), meta={"email": db_user.email})

    return {"message": "Login successful", "data": _auth_data(db_user)}


# Retrieve current authenticated user details
@router.get("/profile", response_model=ApiResponse[schemas.UserResponse])
def profile(current_user: User = Depends(get_current_user)):
    return {"message": "Profile retrieved", "data": current_user}


# Update name, email or password of the current user
@router.put("/update", response_model=ApiResponse[schemas.UserResponse])
def update_profile(
    payload: schemas.UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if payload.password is not None:
        if not verify_password(payload.current_password, current_user.password_hash):
            raise BadRequest("Current password is incorrect")
        current_user.password_hash = get_password_hash(payload.password)

    if payload.name is not None:
        current_user.name = payload.name

    if payload.email is not None:
        normalized_email = payload.email.strip().lower()
        if _email_taken(db, normalized_email, exclude_id=current_user.id):
            raise ValidationError.for_field("email", "The email has already been taken.")
        current_user.email = normalized_email

    db.commit()
    db.refresh(current_user)

    write_log(db, user_id=current_user.id, action="PROFILE_UPDATE", resource="auth",
              ip=client_ip(request), meta={"fields": sorted(payload.model_dump(exclude_unset=True, exclude={"current_password", "password_confirmation"}))})

    return {"message": "Profile updated", "data": current_user}


# Revoke the presented token
@router.post("/logout", response_model=ApiResponse[None])
def logout(
    request: Request,
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    db.add(RevokedToken(jti=payload["jti"], expires_at=expires_at))
    db.commit()

    write_log(db, user_id=current_user.id, action="LOGOUT", resource="auth", ip=client_ip(request))
    return {"message": "Logged out successfully"}
