from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

UserStatus = Literal["pending", "approved", "suspended"]
RoleName = Literal["provider", "beneficiary", "delivery", "deliveryAgent", "delivery_agent", "admin"]


class UserProvision(BaseModel):
    full_name: str = Field(min_length=2, max_length=120)
    email: EmailStr
    role: RoleName
    phone_number: str | None = Field(default=None, min_length=7, max_length=32)
    address: str | None = Field(default=None, min_length=3, max_length=240)
    status: UserStatus | None = None


class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, min_length=2, max_length=120)
    phone_number: str | None = Field(default=None, min_length=7, max_length=32)
    address: str | None = Field(default=None, min_length=3, max_length=240)
    # admin only
    role: RoleName | None = None
    status: UserStatus | None = None
    is_active: bool | None = None


class UserAccessUpdate(BaseModel):
    status: UserStatus | None = None
    is_active: bool | None = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    email: str
    phone_number: str | None
    address: str | None
    role: str
    status: str
    is_active: bool


class UserProvisionOut(BaseModel):
    user: UserOut
    api_key: str


class ApiKeyRotateOut(BaseModel):
    user_id: str
    api_key: str
