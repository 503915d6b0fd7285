from datetime import datetime
from typing import List, Optional

from loguru import logger

from parkshare.application.repositories import AbstractBookingRepository
from parkshare.domain.entities import Booking
from parkshare.domain.errors import ConflictError


class ConflictDetector:
    """Finds confirmed bookings that collide with a requested interval.

    Intervals are half-open, so a booking ending at T never blocks one starting
    at T. Only confirmed bookings reserve a slot; pending ones never block.
    Callers that go on to insert must run this inside the same transaction that
    holds the slot lock (see ``AbstractSlotRepository.lock_for_booking``).
    """

    @staticmethod
    def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
        return a_start < b_end and b_start < a_end

    async def find_conflicts(
        self,
        bookings: AbstractBookingRepository,
        slot_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]:
        return await bookings.find_overlapping(slot_id, start_time, end_time, exclude_booking_id)

    async def ensure_clear(
        self,
        bookings: AbstractBookingRepository,
        slot_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> None:
        conflicts = await self.find_conflicts(bookings, slot_id, start_time, end_time, exclude_booking_id)
        if conflicts:
            logger.warning(
                f"Slot {slot_id} request [{start_time}, {end_time}) collides with booking(s) "
                f"{[b.id for b in conflicts]}"
            )
            raise ConflictError()
