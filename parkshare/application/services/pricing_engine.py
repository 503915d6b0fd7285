from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from parkshare.domain.entities import Slot
from parkshare.domain.errors import RejectionReason, ValidationError

HOURS_PER_DAY = 24


@dataclass(frozen=True)
class FeeSplit:
    platform_fee: float
    owner_payout: float


@dataclass(frozen=True)
class PriceQuote:
    total_amount: float
    platform_fee: float
    owner_payout: float
    hourly_rate: Optional[float]
    daily_rate: Optional[float]
    duration_hours: float


class PricingEngine:
    """Prices a booking from a slot's hourly and daily rates.

    Under a day only the hourly rate applies. From 24 hours on, the renter pays
    whichever of the two rates comes out cheaper for the whole interval.
    """

    def __init__(self, fee_rate: float = 0.10):
        if not 0 <= fee_rate < 1:
            raise ValueError(f"Platform fee rate must be in [0, 1), got {fee_rate}")
        self.fee_rate = fee_rate

    @staticmethod
    def duration_hours(start_time: datetime, end_time: datetime) -> float:
        return (end_time - start_time).total_seconds() / 3600

    def compute_cost(
        self, hourly_rate: Optional[float], daily_rate: Optional[float], duration_hours: float
    ) -> float:
        for rate in (hourly_rate, daily_rate):
            if rate is not None and rate < 0:
                raise ValidationError(RejectionReason.INVALID_RATE, "Rates must not be negative")

        candidates = []
        if hourly_rate is not None:
            candidates.append(hourly_rate * duration_hours)
        # without an hourly rate the daily rate is prorated for any duration
        if daily_rate is not None and (duration_hours >= HOURS_PER_DAY or hourly_rate is None):
            candidates.append(daily_rate * (duration_hours / HOURS_PER_DAY))

        if not candidates:
            raise ValidationError(RejectionReason.MISSING_RATE, "Slot has no rate for this duration")

        cost = round(min(candidates), 2)
        if cost <= 0:
            raise ValidationError(
                RejectionReason.NON_POSITIVE_PRICE, f"Computed price must be positive, got {cost}"
            )
        return cost

    def split(self, cost: float) -> FeeSplit:
        platform_fee = round(cost * self.fee_rate, 2)
        return FeeSplit(platform_fee=platform_fee, owner_payout=round(cost - platform_fee, 2))

    def quote(self, slot: Slot, start_time: datetime, end_time: datetime) -> PriceQuote:
        duration = self.duration_hours(start_time, end_time)
        cost = self.compute_cost(slot.hourly_rate, slot.daily_rate, duration)
        fees = self.split(cost)
        return PriceQuote(
            total_amount=cost,
            platform_fee=fees.platform_fee,
            owner_payout=fees.owner_payout,
            hourly_rate=slot.hourly_rate,
            daily_rate=slot.daily_rate,
            duration_hours=duration,
        )
