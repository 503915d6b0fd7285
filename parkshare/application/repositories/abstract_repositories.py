from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from parkshare.domain.common import BookingStatus, PaymentStatus
from parkshare.domain.entities import User, Slot, Booking, Earning, SlotFilters


class AbstractUserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    async def add(self, user: User) -> User:
        pass


class AbstractSlotRepository(ABC):
    @abstractmethod
    async def get_by_id(self, slot_id: int) -> Optional[Slot]:
        pass

    @abstractmethod
    async def add(self, slot: Slot) -> Slot:
        pass

    @abstractmethod
    async def update(self, slot: Slot) -> Slot:
        pass

    @abstractmethod
    async def delete(self, slot_id: int) -> None:
        pass

    @abstractmethod
    async def lock_for_booking(self, slot_id: int) -> bool:
        """Take the per-slot write lock for the current transaction.

        Returns False when the slot does not exist.
        """

    @abstractmethod
    async def list_available(
        self, community_code: str, requester_id: int, filters: SlotFilters, now: datetime
    ) -> List[Slot]:
        pass

    @abstractmethod
    async def expire_lapsed(self, now: datetime) -> int:
        pass


class AbstractBookingRepository(ABC):
    @abstractmethod
    async def get_by_id(self, booking_id: int) -> Optional[Booking]:
        pass

    @abstractmethod
    async def add(self, booking: Booking) -> Booking:
        pass

    @abstractmethod
    async def update(self, booking: Booking) -> Booking:
        pass

    @abstractmethod
    async def find_overlapping(
        self,
        slot_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]:
        """Confirmed bookings on ``slot_id`` overlapping ``[start_time, end_time)``."""

    @abstractmethod
    async def list_for_renter(self, renter_id: int, status: Optional[BookingStatus] = None) -> List[Booking]:
        pass

    @abstractmethod
    async def count_for_slot(self, slot_id: int) -> int:
        pass

    @abstractmethod
    async def complete_finished(self, now: datetime) -> int:
        pass


class AbstractEarningRepository(ABC):
    @abstractmethod
    async def add(self, earning: Earning) -> Earning:
        pass

    @abstractmethod
    async def get_by_booking_id(self, booking_id: int) -> Optional[Earning]:
        pass

    @abstractmethod
    async def list_for_owner(self, owner_id: int) -> List[Earning]:
        pass

    @abstractmethod
    async def update_payment_status(self, booking_id: int, payment_status: PaymentStatus) -> None:
        pass


class AbstractUnitOfWork(ABC):
    """One store transaction. Leaving the block without ``commit`` rolls back."""

    users: AbstractUserRepository
    slots: AbstractSlotRepository
    bookings: AbstractBookingRepository
    earnings: AbstractEarningRepository

    @abstractmethod
    async def __aenter__(self) -> "AbstractUnitOfWork":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
