from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RequestStatus = Literal["pending", "approved", "in_progress", "completed", "cancelled"]


class RequestCreate(BaseModel):
    listing_id: str
    requested_servings: int = Field(ge=1)
    notes: str | None = Field(default=None, max_length=500)


class RequestStatusUpdate(BaseModel):
    status: RequestStatus


class RequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    listing_id: str
    beneficiary_id: str
    requested_servings: int
    notes: str | None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
