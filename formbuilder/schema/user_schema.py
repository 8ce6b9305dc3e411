from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from formbuilder.constants.utils import CAPABILITIES, ROLES


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 characters")
    role: Optional[ROLES] = None


class SignInRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(..., min_length=1, description="Current password")
    newPassword: str = Field(..., min_length=6, description="New password")


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: ROLES = ROLES.USER
    permissions: List[CAPABILITIES] = []
    isActive: bool = True


class UpdateUserRequest(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None
    role: Optional[ROLES] = None
    permissions: Optional[List[CAPABILITIES]] = None
    isActive: Optional[bool] = None


class ResetPasswordRequest(BaseModel):
    newPassword: str = Field(..., min_length=6)
