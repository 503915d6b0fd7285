from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from parkshare.domain.common import (
    SlotType, SlotStatus, OwnershipMode, BookingStatus, PaymentStatus, UserRole,
)
from parkshare.domain.errors import RejectionReason


@dataclass(frozen=True)
class Actor:
    """Caller identity handed over by the auth collaborator."""
    user_id: int
    community_code: str
    role: UserRole = UserRole.RESIDENT

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: RejectionReason, message: str) -> "Decision":
        return cls(False, reason, message)


class User:
    def __init__(
        self, name: str, community_code: str, role: UserRole = UserRole.RESIDENT, id: Optional[int] = None
    ):
        self.id = id
        self.name = name
        self.community_code = community_code
        self.role = role


class Slot:
    def __init__(
        self,
        community_code: str,
        slot_number: str,
        slot_type: SlotType,
        status: SlotStatus = SlotStatus.AVAILABLE,
        owner_id: Optional[int] = None,
        is_listed_for_rent: bool = False,
        hourly_rate: Optional[float] = None,
        daily_rate: Optional[float] = None,
        available_from: Optional[datetime] = None,
        available_until: Optional[datetime] = None,
        description: Optional[str] = None,
        reservation_seq: int = 0,
        id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.community_code = community_code
        self.slot_number = slot_number
        self.slot_type = slot_type
        self.status = status
        self.owner_id = owner_id
        self.is_listed_for_rent = is_listed_for_rent
        self.hourly_rate = hourly_rate
        self.daily_rate = daily_rate
        self.available_from = available_from
        self.available_until = available_until
        self.description = description
        self.reservation_seq = reservation_seq
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def ownership_mode(self) -> OwnershipMode:
        if self.slot_type == SlotType.VISITOR:
            return OwnershipMode.VISITOR
        if self.owner_id is None:
            return OwnershipMode.SHARED
        return OwnershipMode.OWNED

    @property
    def has_window(self) -> bool:
        return self.available_from is not None and self.available_until is not None


class Booking:
    def __init__(
        self,
        slot_id: int,
        renter_id: int,
        start_time: datetime,
        end_time: datetime,
        total_amount: float,
        hourly_rate_snapshot: Optional[float],
        daily_rate_snapshot: Optional[float] = None,
        status: BookingStatus = BookingStatus.CONFIRMED,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        id: Optional[int] = None,
        cancelled_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.slot_id = slot_id
        self.renter_id = renter_id
        self.start_time = start_time
        self.end_time = end_time
        self.total_amount = total_amount
        self.hourly_rate_snapshot = hourly_rate_snapshot
        self.daily_rate_snapshot = daily_rate_snapshot
        self.status = status
        self.payment_status = payment_status
        self.cancelled_at = cancelled_at
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600


class Earning:
    def __init__(
        self,
        booking_id: int,
        slot_id: int,
        owner_id: Optional[int],
        amount: float,
        platform_fee: float,
        owner_payout: float,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.booking_id = booking_id
        self.slot_id = slot_id
        self.owner_id = owner_id
        self.amount = amount
        self.platform_fee = platform_fee
        self.owner_payout = owner_payout
        self.payment_status = payment_status
        self.created_at = created_at


@dataclass
class SlotAttributes:
    """What an owner (or admin) supplies when listing a slot."""
    slot_number: str
    slot_type: Union[SlotType, str]
    hourly_rate: Optional[float] = None
    daily_rate: Optional[float] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    is_listed_for_rent: bool = False
    description: Optional[str] = None
    shared: bool = False


@dataclass
class SlotChanges:
    """Partial edit of a slot's metadata. ``None`` leaves a field untouched."""
    slot_number: Optional[str] = None
    hourly_rate: Optional[float] = None
    daily_rate: Optional[float] = None
    is_listed_for_rent: Optional[bool] = None
    description: Optional[str] = None


@dataclass
class SlotFilters:
    slot_type: Optional[SlotType] = None
    max_hourly_rate: Optional[float] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
