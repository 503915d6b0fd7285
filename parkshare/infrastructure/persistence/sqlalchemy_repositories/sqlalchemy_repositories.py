from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, exists, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from parkshare.application.repositories import (
    AbstractUserRepository,
    AbstractSlotRepository,
    AbstractBookingRepository,
    AbstractEarningRepository,
)
from parkshare.domain.common import (
    BookingStatus, PaymentStatus, SlotStatus, SlotType, UserRole,
)
from parkshare.domain.entities import User, Slot, Booking, Earning, SlotFilters
from parkshare.domain.errors import ConflictError, NotFoundError, RejectionReason, ValidationError
from parkshare.infrastructure.persistence.models.models import (
    User as ORMUser,
    Slot as ORMSlot,
    Booking as ORMBooking,
    Earning as ORMEarning,
)


def _to_user(orm_user: ORMUser) -> User:
    return User(
        id=orm_user.id,
        name=orm_user.name,
        community_code=orm_user.community_code,
        role=UserRole(orm_user.role),
    )


def _to_slot(orm_slot: ORMSlot) -> Slot:
    return Slot(
        id=orm_slot.id,
        community_code=orm_slot.community_code,
        slot_number=orm_slot.slot_number,
        slot_type=SlotType(orm_slot.slot_type),
        status=SlotStatus(orm_slot.status),
        owner_id=orm_slot.owner_id,
        is_listed_for_rent=orm_slot.is_listed_for_rent,
        hourly_rate=orm_slot.hourly_rate,
        daily_rate=orm_slot.daily_rate,
        available_from=orm_slot.available_from,
        available_until=orm_slot.available_until,
        description=orm_slot.description,
        reservation_seq=orm_slot.reservation_seq,
        created_at=orm_slot.created_at,
        updated_at=orm_slot.updated_at,
    )


def _to_booking(orm_booking: ORMBooking) -> Booking:
    return Booking(
        id=orm_booking.id,
        slot_id=orm_booking.slot_id,
        renter_id=orm_booking.renter_id,
        start_time=orm_booking.start_time,
        end_time=orm_booking.end_time,
        total_amount=orm_booking.total_amount,
        hourly_rate_snapshot=orm_booking.hourly_rate_snapshot,
        daily_rate_snapshot=orm_booking.daily_rate_snapshot,
        status=BookingStatus(orm_booking.status),
        payment_status=PaymentStatus(orm_booking.payment_status),
        cancelled_at=orm_booking.cancelled_at,
        created_at=orm_booking.created_at,
        updated_at=orm_booking.updated_at,
    )


def _to_earning(orm_earning: ORMEarning) -> Earning:
    return Earning(
        id=orm_earning.id,
        booking_id=orm_earning.booking_id,
        slot_id=orm_earning.slot_id,
        owner_id=orm_earning.owner_id,
        amount=orm_earning.amount,
        platform_fee=orm_earning.platform_fee,
        owner_payout=orm_earning.owner_payout,
        payment_status=PaymentStatus(orm_earning.payment_status),
        created_at=orm_earning.created_at,
    )


def _overlaps(start_time: datetime, end_time: datetime):
    # half-open intervals: [a1, a2) and [b1, b2) overlap iff a1 < b2 and b1 < a2
    return and_(ORMBooking.start_time < end_time, start_time < ORMBooking.end_time)


class SQLAlchemyUserRepository(AbstractUserRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[User]:
        orm_user = await self.session.get(ORMUser, user_id)
        if orm_user:
            return _to_user(orm_user)
        return None

    async def add(self, user: User) -> User:
        orm_user = ORMUser(
            name=user.name,
            community_code=user.community_code,
            role=UserRole(user.role).value,
        )
        self.session.add(orm_user)
        await self.session.flush()
        await self.session.refresh(orm_user)
        return _to_user(orm_user)


class SQLAlchemySlotRepository(AbstractSlotRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, slot_id: int) -> Optional[Slot]:
        result = await self.session.execute(
            select(ORMSlot).where(ORMSlot.id == slot_id).execution_options(populate_existing=True)
        )
        orm_slot = result.scalars().first()
        if orm_slot:
            return _to_slot(orm_slot)
        return None

    async def add(self, slot: Slot) -> Slot:
        orm_slot = ORMSlot(
            community_code=slot.community_code,
            slot_number=slot.slot_number,
            slot_type=SlotType(slot.slot_type).value,
            owner_id=slot.owner_id,
            is_listed_for_rent=slot.is_listed_for_rent,
            status=SlotStatus(slot.status).value,
            hourly_rate=slot.hourly_rate,
            daily_rate=slot.daily_rate,
            available_from=slot.available_from,
            available_until=slot.available_until,
            description=slot.description,
        )
        self.session.add(orm_slot)
        await self._flush_slot()
        await self.session.refresh(orm_slot)
        return _to_slot(orm_slot)

    async def update(self, slot: Slot) -> Slot:
        orm_slot = await self.session.get(ORMSlot, slot.id)
        if not orm_slot:
            raise NotFoundError(RejectionReason.SLOT_NOT_FOUND, f"Slot with ID {slot.id} not found.")
        orm_slot.slot_number = slot.slot_number
        orm_slot.status = SlotStatus(slot.status).value
        orm_slot.is_listed_for_rent = slot.is_listed_for_rent
        orm_slot.hourly_rate = slot.hourly_rate
        orm_slot.daily_rate = slot.daily_rate
        orm_slot.available_from = slot.available_from
        orm_slot.available_until = slot.available_until
        orm_slot.description = slot.description
        await self._flush_slot()
        await self.session.refresh(orm_slot)
        return _to_slot(orm_slot)

    async def delete(self, slot_id: int) -> None:
        orm_slot = await self.session.get(ORMSlot, slot_id)
        if orm_slot:
            await self.session.delete(orm_slot)
            await self.session.flush()

    async def lock_for_booking(self, slot_id: int) -> bool:
        result = await self.session.execute(
            update(ORMSlot)
            .where(ORMSlot.id == slot_id)
            .values(reservation_seq=ORMSlot.reservation_seq + 1, updated_at=ORMSlot.updated_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_available(
        self, community_code: str, requester_id: int, filters: SlotFilters, now: datetime
    ) -> List[Slot]:
        conditions = [
            ORMSlot.community_code == community_code,
            ORMSlot.status == SlotStatus.AVAILABLE.value,
            or_(ORMSlot.available_until.is_(None), ORMSlot.available_until > now),
            or_(
                ORMSlot.owner_id.is_(None),
                ORMSlot.slot_type == SlotType.VISITOR.value,
                ORMSlot.is_listed_for_rent.is_(True),
                ORMSlot.owner_id == requester_id,
            ),
        ]
        if filters.slot_type is not None:
            conditions.append(ORMSlot.slot_type == SlotType(filters.slot_type).value)
        if filters.max_hourly_rate is not None:
            conditions.append(ORMSlot.hourly_rate.is_not(None))
            conditions.append(ORMSlot.hourly_rate <= filters.max_hourly_rate)
        if filters.start_time is not None and filters.end_time is not None:
            conditions.append(or_(ORMSlot.available_from.is_(None), ORMSlot.available_from <= filters.start_time))
            conditions.append(or_(ORMSlot.available_until.is_(None), ORMSlot.available_until >= filters.end_time))
            conditions.append(
                ~exists().where(
                    and_(
                        ORMBooking.slot_id == ORMSlot.id,
                        ORMBooking.status == BookingStatus.CONFIRMED.value,
                        _overlaps(filters.start_time, filters.end_time),
                    )
                )
            )

        result = await self.session.execute(
            select(ORMSlot).where(and_(*conditions)).order_by(ORMSlot.created_at.desc(), ORMSlot.id.desc())
        )
        return [_to_slot(s) for s in result.scalars().all()]

    async def expire_lapsed(self, now: datetime) -> int:
        result = await self.session.execute(
            update(ORMSlot)
            .where(
                and_(
                    ORMSlot.status == SlotStatus.AVAILABLE.value,
                    ORMSlot.available_until.is_not(None),
                    ORMSlot.available_until < now,
                )
            )
            .values(status=SlotStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def _flush_slot(self):
        try:
            await self.session.flush()
        except IntegrityError as e:
            msg = str(e.orig)
            # constraint name on Postgres, column list on SQLite
            if "uq_slots_community_number" in msg or "slots.community_code, slots.slot_number" in msg:
                raise ValidationError(
                    RejectionReason.DUPLICATE_SLOT_NUMBER, "Slot number already exists"
                ) from e
            raise ValidationError(RejectionReason.INVALID_ATTRIBUTES, "Slot attributes rejected by the store") from e


class SQLAlchemyBookingRepository(AbstractBookingRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, booking_id: int) -> Optional[Booking]:
        orm_booking = await self.session.get(ORMBooking, booking_id)
        if orm_booking:
            return _to_booking(orm_booking)
        return None

    async def add(self, booking: Booking) -> Booking:
        orm_booking = ORMBooking(
            slot_id=booking.slot_id,
            renter_id=booking.renter_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status=BookingStatus(booking.status).value,
            total_amount=booking.total_amount,
            hourly_rate_snapshot=booking.hourly_rate_snapshot,
            daily_rate_snapshot=booking.daily_rate_snapshot,
            payment_status=PaymentStatus(booking.payment_status).value,
        )
        self.session.add(orm_booking)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # the only uniqueness rule on bookings is the confirmed slot/start index
            raise ConflictError() from e
        await self.session.refresh(orm_booking)
        return _to_booking(orm_booking)

    async def update(self, booking: Booking) -> Booking:
        orm_booking = await self.session.get(ORMBooking, booking.id)
        if not orm_booking:
            raise NotFoundError(RejectionReason.BOOKING_NOT_FOUND, f"Booking with ID {booking.id} not found.")
        orm_booking.status = BookingStatus(booking.status).value
        orm_booking.payment_status = PaymentStatus(booking.payment_status).value
        orm_booking.cancelled_at = booking.cancelled_at
        await self.session.flush()
        await self.session.refresh(orm_booking)
        return _to_booking(orm_booking)

    async def find_overlapping(
        self,
        slot_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]:
        conditions = [
            ORMBooking.slot_id == slot_id,
            ORMBooking.status == BookingStatus.CONFIRMED.value,
            _overlaps(start_time, end_time),
        ]
        if exclude_booking_id is not None:
            conditions.append(ORMBooking.id != exclude_booking_id)

        result = await self.session.execute(
            select(ORMBooking).where(and_(*conditions)).order_by(ORMBooking.start_time)
        )
        return [_to_booking(b) for b in result.scalars().all()]

    async def list_for_renter(self, renter_id: int, status: Optional[BookingStatus] = None) -> List[Booking]:
        query = select(ORMBooking).where(ORMBooking.renter_id == renter_id)
        if status is not None:
            query = query.where(ORMBooking.status == BookingStatus(status).value)
        result = await self.session.execute(query.order_by(ORMBooking.start_time.desc()))
        return [_to_booking(b) for b in result.scalars().all()]

    async def count_for_slot(self, slot_id: int) -> int:
        result = await self.session.execute(
            select(func.count(ORMBooking.id)).where(ORMBooking.slot_id == slot_id)
        )
        return result.scalar() or 0

    async def complete_finished(self, now: datetime) -> int:
        result = await self.session.execute(
            update(ORMBooking)
            .where(
                and_(
                    ORMBooking.status == BookingStatus.CONFIRMED.value,
                    ORMBooking.end_time <= now,
                )
            )
            .values(status=BookingStatus.COMPLETED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class SQLAlchemyEarningRepository(AbstractEarningRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, earning: Earning) -> Earning:
        orm_earning = ORMEarning(
            booking_id=earning.booking_id,
            slot_id=earning.slot_id,
            owner_id=earning.owner_id,
            amount=earning.amount,
            platform_fee=earning.platform_fee,
            owner_payout=earning.owner_payout,
            payment_status=PaymentStatus(earning.payment_status).value,
        )
        self.session.add(orm_earning)
        await self.session.flush()
        await self.session.refresh(orm_earning)
        return _to_earning(orm_earning)

    async def get_by_booking_id(self, booking_id: int) -> Optional[Earning]:
        result = await self.session.execute(
            select(ORMEarning).where(ORMEarning.booking_id == booking_id)
        )
        orm_earning = result.scalars().first()
        if orm_earning:
            return _to_earning(orm_earning)
        return None

    async def list_for_owner(self, owner_id: int) -> List[Earning]:
        result = await self.session.execute(
            select(ORMEarning).where(ORMEarning.owner_id == owner_id).order_by(ORMEarning.created_at.desc())
        )
        return [_to_earning(e) for e in result.scalars().all()]

    async def update_payment_status(self, booking_id: int, payment_status: PaymentStatus) -> None:
        await self.session.execute(
            update(ORMEarning)
            .where(ORMEarning.booking_id == booking_id)
            .values(payment_status=PaymentStatus(payment_status).value)
            .execution_options(synchronize_session=False)
        )
