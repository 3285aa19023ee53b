from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DeliveryStatus = Literal["assigned", "picked_up", "delivered", "cancelled"]


class DeliveryAccept(BaseModel):
    pickup_address: str = Field(min_length=3, max_length=240)
    dropoff_address: str = Field(min_length=3, max_length=240)


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus
    proof_url: str | None = Field(default=None, max_length=500)


class DeliveryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    request_id: str
    delivery_agent_id: str
    pickup_address: str
    dropoff_address: str
    status: str
    picked_up_at: datetime | None
    delivered_at: datetime | None
    proof_url: str | None
    created_at: datetime | None = None
