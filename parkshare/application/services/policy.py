from dataclasses import dataclass
from datetime import timedelta

from parkshare.config.settings_env import Settings, settings as default_settings


@dataclass(frozen=True)
class BookingPolicy:
    min_duration_hours: float = 1
    max_duration_hours: float = 24
    max_advance_days: int = 30
    cancellation_grace_hours: float = 1
    platform_fee_rate: float = 0.10

    @property
    def cancellation_grace(self) -> timedelta:
        return timedelta(hours=self.cancellation_grace_hours)

    @property
    def max_advance(self) -> timedelta:
        return timedelta(days=self.max_advance_days)

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "BookingPolicy":
        return cls(
            min_duration_hours=settings.MIN_DURATION_HOURS,
            max_duration_hours=settings.MAX_DURATION_HOURS,
            max_advance_days=settings.MAX_ADVANCE_DAYS,
            cancellation_grace_hours=settings.CANCELLATION_GRACE_HOURS,
            platform_fee_rate=settings.PLATFORM_FEE_RATE,
        )
