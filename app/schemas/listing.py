from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ListingStatus = Literal["available", "reserved", "completed", "expired"]


class ListingCreate(BaseModel):
    title: str = Field(min_length=3, max_length=140)
    description: str | None = Field(default=None, max_length=2000)
    category: str = Field(min_length=2, max_length=60)
    food_type: str = Field(min_length=2, max_length=60)
    servings_total: int = Field(ge=1)
    expiry_at: datetime
    address: str = Field(min_length=3, max_length=240)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class ListingUpdate(BaseModel):
    # servings are not patchable; they move only through requests
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=3, max_length=140)
    description: str | None = Field(default=None, max_length=2000)
    category: str | None = Field(default=None, min_length=2, max_length=60)
    food_type: str | None = Field(default=None, min_length=2, max_length=60)
    expiry_at: datetime | None = None
    address: str | None = Field(default=None, min_length=3, max_length=240)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    status: ListingStatus | None = None


class ListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    provider_id: str
    title: str
    description: str | None
    category: str
    food_type: str
    servings_total: int
    servings_left: int
    status: str
    expiry_at: datetime
    address: str
    latitude: float | None = None
    longitude: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
