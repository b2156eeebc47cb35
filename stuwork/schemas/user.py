from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    # Optional because a new user might not have them yet
    phone: Optional[str] = None
    skills: Optional[List[str]] = None
    experience: Optional[str] = None
    address: Optional[str] = None
    headline: Optional[str] = None
    about: Optional[str] = None
    is_verified: bool = False
    created_at: Optional[datetime] = None


class UserProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    skills: Optional[List[str]] = None
    experience: Optional[str] = None
    address: Optional[str] = None
    headline: Optional[str] = None
    about: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is None or not v.strip():
            raise ValueError('Name cannot be empty')
        return v


class ProfileUpdateResponse(BaseModel):
    message: str
    user: UserResponse
