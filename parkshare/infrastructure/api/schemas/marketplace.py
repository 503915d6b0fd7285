from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from parkshare.domain.common import (
    BookingStatus, OwnershipMode, PaymentStatus, SlotStatus, SlotType,
)
from parkshare.shared.utils import as_utc


class SlotCreate(BaseModel):
    slot_number: str = Field(..., min_length=1, max_length=50)
    slot_type: SlotType
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    daily_rate: Optional[float] = Field(default=None, ge=0)
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    is_listed_for_rent: bool = False
    description: Optional[str] = Field(default=None, max_length=500)
    shared: bool = False

    @field_validator('slot_number')
    def validate_slot_number(cls, v):  # pylint: disable=no-self-argument
        return v.upper().strip()

    @field_validator('available_from', 'available_until')
    @classmethod
    def normalize_to_utc(cls, dt: Optional[datetime]) -> Optional[datetime]:
        return as_utc(dt) if dt is not None else None

    @model_validator(mode='after')
    def check_rates(self):
        if self.hourly_rate is None and self.daily_rate is None:
            raise ValueError("At least one of hourly_rate or daily_rate is required")
        return self


class SlotUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    slot_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    daily_rate: Optional[float] = Field(default=None, ge=0)
    is_listed_for_rent: Optional[bool] = None
    description: Optional[str] = Field(default=None, max_length=500)


class SlotStatusChange(BaseModel):
    status: SlotStatus


class SlotRelist(BaseModel):
    available_from: datetime
    available_until: datetime

    @field_validator('available_from', 'available_until')
    @classmethod
    def normalize_to_utc(cls, dt: datetime) -> datetime:
        return as_utc(dt)


class SlotResponse(BaseModel):
    id: int
    community_code: str
    slot_number: str
    slot_type: SlotType
    status: SlotStatus
    ownership_mode: OwnershipMode
    owner_id: Optional[int] = None
    is_listed_for_rent: bool
    hourly_rate: Optional[float] = None
    daily_rate: Optional[float] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BookingCreate(BaseModel):
    slot_id: int = Field(..., ge=1)
    start_time: datetime
    end_time: datetime

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_to_utc(cls, dt: datetime) -> datetime:
        return as_utc(dt)


class BookingResponse(BaseModel):
    id: int
    slot_id: int
    renter_id: int
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    total_amount: float
    hourly_rate_snapshot: Optional[float] = None
    daily_rate_snapshot: Optional[float] = None
    payment_status: PaymentStatus
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EarningResponse(BaseModel):
    id: int
    booking_id: int
    slot_id: int
    owner_id: Optional[int] = None
    amount: float
    platform_fee: float
    owner_payout: float
    payment_status: PaymentStatus

    model_config = ConfigDict(from_attributes=True)


class SweepResult(BaseModel):
    count: int


class ErrorResponse(BaseModel):
    detail: str
    reason: str
