from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from parkshare.application.repositories import AbstractUnitOfWork
from parkshare.domain.entities import Slot
from parkshare.domain.errors import RejectionReason, ValidationError
from parkshare.shared.utils import utc_now


class AvailabilityWindowTracker:
    """Keeps time-bounded listings honest.

    A listing with ``[available_from, available_until)`` may only be booked
    inside that window, and once ``available_until`` passes the expiry sweep
    flips it from ``available`` to ``expired``. Slots without a window are
    permanent and never expire.
    """

    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        clock: Callable[[], datetime] = utc_now,
    ):
        self.uow_factory = uow_factory
        self.clock = clock

    @staticmethod
    def validate_window(available_from: Optional[datetime], available_until: Optional[datetime]) -> None:
        if (available_from is None) != (available_until is None):
            raise ValidationError(
                RejectionReason.INVALID_WINDOW,
                "available_from and available_until must be given together",
            )
        if available_from is not None and available_until <= available_from:
            raise ValidationError(
                RejectionReason.INVALID_WINDOW, "available_until must be after available_from"
            )

    @staticmethod
    def is_within_window(slot: Slot, start_time: datetime, end_time: datetime) -> bool:
        if not slot.has_window:
            return True
        return slot.available_from <= start_time and end_time <= slot.available_until

    @staticmethod
    def is_lapsed(slot: Slot, now: datetime) -> bool:
        return slot.available_until is not None and slot.available_until < now

    async def expire_stale_slots(self) -> int:
        """Expire every available listing whose window has closed.

        A single conditional UPDATE, so concurrent or repeated runs only ever
        move ``available -> expired`` and converge on the same state.
        """
        now = self.clock()
        async with self.uow_factory() as uow:
            count = await uow.slots.expire_lapsed(now)
            await uow.commit()

        if count:
            logger.info(f"Expired {count} lapsed slot listing(s)")
        else:
            logger.debug("Expiry sweep found no lapsed listings")
        return count
