from typing import Optional

from pydantic import BaseModel, Field


# Fields are optional so missing values reach the credential store and get
# the same 400 messages as malformed ones.
class UserCreate(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: Optional[str] = Field(default=None, alias="currentPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")


class AccountDelete(BaseModel):
    password: Optional[str] = None
