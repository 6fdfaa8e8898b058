from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from ..models.user import UserRole

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class UserRegister(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=6)
    mobile: str | None = Field(default=None, max_length=32)


class User(BaseModel):
    id: int
    name: str
    email: str
    mobile: str | None = None
    role: UserRole
    whatsapp_enabled: bool = False
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=255)
    mobile: str | None = Field(default=None, max_length=32)
    whatsapp_enabled: bool | None = None


class MakeAdmin(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN)


class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)
    confirm_password: str

    @model_validator(mode="after")
    def _check_confirmation(self) -> "PasswordChange":
        if self.new_password != self.confirm_password:
            raise ValueError("New password and confirmation do not match")
        return self
