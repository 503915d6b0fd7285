from datetime import datetime
from typing import Callable, List, Optional, Union

from loguru import logger

from parkshare.application.repositories import AbstractUnitOfWork
from parkshare.application.services.availability_tracker import AvailabilityWindowTracker
from parkshare.application.services.conflict_detector import ConflictDetector
from parkshare.application.services.policy import BookingPolicy
from parkshare.application.services.pricing_engine import PricingEngine
from parkshare.application.services.slot_registry import SlotRegistry
from parkshare.domain.common import BookingStatus, PaymentStatus
from parkshare.domain.entities import Actor, Booking, Earning, Slot
from parkshare.domain.errors import (
    NotAllowedError, NotFoundError, RejectionReason, ValidationError,
)
from parkshare.domain.transitions import ensure_booking_transition
from parkshare.shared.utils import as_utc, utc_now


class BookingService:
    """Creates bookings and drives them through their lifecycle.

    New bookings are confirmed immediately (instant booking). From there a
    booking is cancelled by its renter within the grace period, marked a
    no-show by the slot owner or an admin, or completed once it has ended.
    """

    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        policy: Optional[BookingPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
        conflict_detector: Optional[ConflictDetector] = None,
        pricing_engine: Optional[PricingEngine] = None,
    ):
        self.uow_factory = uow_factory
        self.policy = policy or BookingPolicy.from_settings()
        self.clock = clock
        self.conflict_detector = conflict_detector or ConflictDetector()
        self.pricing_engine = pricing_engine or PricingEngine(self.policy.platform_fee_rate)

    async def create_booking(
        self, actor: Actor, slot_id: int, start_time: datetime, end_time: datetime
    ) -> Booking:
        start_time = as_utc(start_time)
        end_time = as_utc(end_time)
        now = self.clock()
        self._validate_request(start_time, end_time, now)

        async with self.uow_factory() as uow:
            # serializes check-then-insert against other writers on this slot
            if not await uow.slots.lock_for_booking(slot_id):
                raise NotFoundError(RejectionReason.SLOT_NOT_FOUND, "Slot not found")
            slot = await self._load_slot(uow, actor, slot_id)

            renter = await uow.users.get_by_id(actor.user_id)
            if renter is None or renter.community_code != actor.community_code:
                raise NotFoundError(RejectionReason.USER_NOT_FOUND, "Renter not found")

            decision = SlotRegistry.can_book(slot, actor.user_id)
            if not decision:
                logger.warning(f"User {actor.user_id} denied slot {slot_id}: {decision.message}")
                raise NotAllowedError(decision.reason, decision.message)

            if not AvailabilityWindowTracker.is_within_window(slot, start_time, end_time):
                raise NotAllowedError(
                    RejectionReason.OUTSIDE_AVAILABILITY_WINDOW,
                    "Requested time falls outside the slot's availability window",
                )

            await self.conflict_detector.ensure_clear(uow.bookings, slot_id, start_time, end_time)

            quote = self.pricing_engine.quote(slot, start_time, end_time)

            booking = await uow.bookings.add(
                Booking(
                    slot_id=slot_id,
                    renter_id=actor.user_id,
                    start_time=start_time,
                    end_time=end_time,
                    total_amount=quote.total_amount,
                    hourly_rate_snapshot=quote.hourly_rate,
                    daily_rate_snapshot=quote.daily_rate,
                    status=BookingStatus.CONFIRMED,
                    payment_status=PaymentStatus.PENDING,
                )
            )
            await uow.earnings.add(
                Earning(
                    booking_id=booking.id,
                    slot_id=slot_id,
                    owner_id=slot.owner_id,
                    amount=quote.total_amount,
                    platform_fee=quote.platform_fee,
                    owner_payout=quote.owner_payout,
                )
            )
            await uow.commit()

        logger.info(
            f"Booking {booking.id} confirmed: slot {slot_id}, renter {actor.user_id}, "
            f"[{start_time.isoformat()}, {end_time.isoformat()}), amount ${booking.total_amount}"
        )
        return booking

    async def cancel_booking(self, actor: Actor, booking_id: int) -> Booking:
        now = self.clock()
        async with self.uow_factory() as uow:
            booking, _ = await self._load_booking(uow, actor, booking_id)
            if booking.renter_id != actor.user_id and not actor.is_admin:
                raise NotAllowedError(RejectionReason.NOT_BOOKING_PARTY, "Not authorized to cancel this booking")
            ensure_booking_transition(booking.status, BookingStatus.CANCELLED)
            if now >= booking.start_time + self.policy.cancellation_grace:
                logger.warning(f"Cancellation of booking {booking_id} refused: grace period over")
                raise NotAllowedError(
                    RejectionReason.TOO_LATE_TO_CANCEL,
                    f"Too late to cancel: bookings can be cancelled up to "
                    f"{self.policy.cancellation_grace_hours:g} hour(s) after they start",
                )

            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = now
            booking = await uow.bookings.update(booking)
            await uow.commit()

        logger.info(f"Booking {booking_id} cancelled by user {actor.user_id}")
        return booking

    async def complete_booking(self, booking_id: int) -> Booking:
        now = self.clock()
        async with self.uow_factory() as uow:
            booking = await uow.bookings.get_by_id(booking_id)
            if booking is None:
                raise NotFoundError(RejectionReason.BOOKING_NOT_FOUND, "Booking not found")
            ensure_booking_transition(booking.status, BookingStatus.COMPLETED)
            if now < booking.end_time:
                raise NotAllowedError(RejectionReason.BOOKING_NOT_FINISHED, "Booking has not ended yet")

            booking.status = BookingStatus.COMPLETED
            booking = await uow.bookings.update(booking)
            await uow.commit()

        logger.info(f"Booking {booking_id} completed")
        return booking

    async def complete_finished_bookings(self) -> int:
        now = self.clock()
        async with self.uow_factory() as uow:
            count = await uow.bookings.complete_finished(now)
            await uow.commit()

        if count:
            logger.info(f"Completed {count} finished booking(s)")
        return count

    async def mark_no_show(self, actor: Actor, booking_id: int) -> Booking:
        now = self.clock()
        async with self.uow_factory() as uow:
            booking, slot = await self._load_booking(uow, actor, booking_id)
            if not actor.is_admin and slot.owner_id != actor.user_id:
                raise NotAllowedError(
                    RejectionReason.NOT_SLOT_MANAGER, "Only the slot owner or an admin may report a no-show"
                )
            ensure_booking_transition(booking.status, BookingStatus.NO_SHOW)
            if now < booking.start_time:
                raise NotAllowedError(RejectionReason.BOOKING_NOT_STARTED, "Booking has not started yet")

            booking.status = BookingStatus.NO_SHOW
            booking = await uow.bookings.update(booking)
            await uow.commit()

        logger.info(f"Booking {booking_id} marked no-show by user {actor.user_id}")
        return booking

    async def get_booking(self, actor: Actor, booking_id: int) -> Booking:
        async with self.uow_factory() as uow:
            booking, slot = await self._load_booking(uow, actor, booking_id)
        if actor.is_admin or actor.user_id in (booking.renter_id, slot.owner_id):
            return booking
        raise NotAllowedError(RejectionReason.NOT_BOOKING_PARTY, "Not authorized to view this booking")

    async def list_bookings_for_renter(
        self, actor: Actor, status: Optional[Union[BookingStatus, str]] = None
    ) -> List[Booking]:
        if status is not None:
            try:
                status = BookingStatus(status)
            except ValueError:
                raise ValidationError(
                    RejectionReason.INVALID_STATUS,
                    f"Invalid status. Must be one of {', '.join(s.value for s in BookingStatus)}",
                )
        async with self.uow_factory() as uow:
            return await uow.bookings.list_for_renter(actor.user_id, status)

    async def list_earnings_for_owner(self, actor: Actor) -> List[Earning]:
        async with self.uow_factory() as uow:
            return await uow.earnings.list_for_owner(actor.user_id)

    async def record_payment_status(
        self, booking_id: int, payment_status: Union[PaymentStatus, str]
    ) -> Booking:
        """Hook for the payment collaborator; never touches amounts."""
        try:
            payment_status = PaymentStatus(payment_status)
        except ValueError:
            raise ValidationError(
                RejectionReason.INVALID_STATUS,
                f"Invalid payment status. Must be one of {', '.join(s.value for s in PaymentStatus)}",
            )

        async with self.uow_factory() as uow:
            booking = await uow.bookings.get_by_id(booking_id)
            if booking is None:
                raise NotFoundError(RejectionReason.BOOKING_NOT_FOUND, "Booking not found")
            booking.payment_status = payment_status
            booking = await uow.bookings.update(booking)
            await uow.earnings.update_payment_status(booking_id, payment_status)
            await uow.commit()

        logger.info(f"Booking {booking_id} payment status -> {payment_status.value}")
        return booking

    def _validate_request(self, start_time: datetime, end_time: datetime, now: datetime) -> None:
        if start_time <= now:
            raise ValidationError(RejectionReason.START_IN_PAST, "start_time must be in the future")
        if end_time <= start_time:
            raise ValidationError(RejectionReason.INVALID_INTERVAL, "end_time must be after start_time")

        duration_hours = PricingEngine.duration_hours(start_time, end_time)
        if duration_hours < self.policy.min_duration_hours:
            raise ValidationError(
                RejectionReason.DURATION_TOO_SHORT,
                f"Minimum booking duration is {self.policy.min_duration_hours:g} hour(s)",
            )
        if duration_hours > self.policy.max_duration_hours:
            raise ValidationError(
                RejectionReason.DURATION_TOO_LONG,
                f"Maximum booking duration is {self.policy.max_duration_hours:g} hours",
            )
        if start_time - now > self.policy.max_advance:
            raise ValidationError(
                RejectionReason.TOO_FAR_IN_ADVANCE,
                f"Cannot book more than {self.policy.max_advance_days} days in advance",
            )

    @staticmethod
    async def _load_slot(uow: AbstractUnitOfWork, actor: Actor, slot_id: int) -> Slot:
        slot = await uow.slots.get_by_id(slot_id)
        if slot is None or slot.community_code != actor.community_code:
            raise NotFoundError(RejectionReason.SLOT_NOT_FOUND, "Slot not found")
        return slot

    async def _load_booking(self, uow: AbstractUnitOfWork, actor: Actor, booking_id: int):
        booking = await uow.bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFoundError(RejectionReason.BOOKING_NOT_FOUND, "Booking not found")
        slot = await uow.slots.get_by_id(booking.slot_id)
        if slot is None or slot.community_code != actor.community_code:
            raise NotFoundError(RejectionReason.BOOKING_NOT_FOUND, "Booking not found")
        return booking, slot
