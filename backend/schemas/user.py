from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator, model_validator

from schemas.common import ORMBase

# Schema for user authentication credentials
class UserLogin(BaseModel):
    email: EmailStr
    password: str

# Schema for user registration requests
class UserCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirmation: str

    @field_validator("password_confirmation")
    @classmethod
    def _passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if info.data.get("password") is not None and value != info.data["password"]:
            raise ValueError("password confirmation does not match")
        return value

# Schema for profile updates; every field is optional
class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)
    password_confirmation: Optional[str] = None

    @model_validator(mode="after")
    def _password_change_is_complete(self):
        if self.password is not None:
            if not self.current_password:
                raise ValueError("current_password is required to change the password")
            if self.password != self.password_confirmation:
                raise ValueError("password confirmation does not match")
        return self

# Output schema for user profile details
class UserResponse(ORMBase):
    id: int
    name: str
    email: EmailStr
    role: str
    created_at: Optional[datetime] = None

# Payload returned by register and login
class AuthData(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
