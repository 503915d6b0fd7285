from datetime import datetime
from typing import Callable, List, Optional, Union

from loguru import logger

from parkshare.application.repositories import AbstractUnitOfWork
from parkshare.application.services.availability_tracker import AvailabilityWindowTracker
from parkshare.domain.common import OwnershipMode, SlotStatus, SlotType, UserRole
from parkshare.domain.entities import Actor, Decision, Slot, SlotAttributes, SlotChanges, SlotFilters
from parkshare.domain.errors import (
    ConflictError, NotAllowedError, NotFoundError, RejectionReason, ValidationError,
)
from parkshare.domain.transitions import ensure_slot_transition
from parkshare.shared.utils import as_utc, utc_now


class SlotRegistry:
    """Catalog of slots plus the rules on who may book or manage them."""

    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        clock: Callable[[], datetime] = utc_now,
    ):
        self.uow_factory = uow_factory
        self.clock = clock

    # Rules

    @staticmethod
    def can_book(slot: Slot, requester_id: int) -> Decision:
        if slot.status != SlotStatus.AVAILABLE:
            return Decision.deny(
                RejectionReason.SLOT_NOT_AVAILABLE, f"Slot is currently {SlotStatus(slot.status).value}"
            )
        if (
            slot.ownership_mode == OwnershipMode.OWNED
            and slot.owner_id != requester_id
            and not slot.is_listed_for_rent
        ):
            return Decision.deny(
                RejectionReason.SLOT_OWNED_BY_OTHER, "This slot is reserved for another resident"
            )
        return Decision.allow()

    @staticmethod
    def can_modify(slot: Slot, requester_id: int, role: UserRole) -> Decision:
        if role == UserRole.ADMIN:
            return Decision.allow()
        if slot.owner_id is not None and slot.owner_id == requester_id:
            return Decision.allow()
        return Decision.deny(RejectionReason.NOT_SLOT_MANAGER, "Only the slot owner or an admin may change this slot")

    # Operations

    async def create_slot(self, actor: Actor, attributes: SlotAttributes) -> Slot:
        slot_type = self._parse_slot_type(attributes.slot_type)
        ownerless = attributes.shared or slot_type == SlotType.VISITOR
        if ownerless and not actor.is_admin:
            raise NotAllowedError(RejectionReason.ADMIN_REQUIRED, "Only an admin may create shared or visitor slots")

        slot_number = (attributes.slot_number or "").strip()
        if not slot_number:
            raise ValidationError(RejectionReason.INVALID_ATTRIBUTES, "Slot number is required")

        self._validate_rates(attributes.hourly_rate, attributes.daily_rate)
        available_from = as_utc(attributes.available_from) if attributes.available_from else None
        available_until = as_utc(attributes.available_until) if attributes.available_until else None
        AvailabilityWindowTracker.validate_window(available_from, available_until)

        slot = Slot(
            community_code=actor.community_code,
            slot_number=slot_number,
            slot_type=slot_type,
            status=SlotStatus.AVAILABLE,
            owner_id=None if ownerless else actor.user_id,
            is_listed_for_rent=False if ownerless else attributes.is_listed_for_rent,
            hourly_rate=attributes.hourly_rate,
            daily_rate=attributes.daily_rate,
            available_from=available_from,
            available_until=available_until,
            description=attributes.description,
        )
        async with self.uow_factory() as uow:
            slot = await uow.slots.add(slot)
            await uow.commit()

        logger.info(
            f"Slot {slot.slot_number} ({slot.ownership_mode.value}) created in {slot.community_code} "
            f"by user {actor.user_id}"
        )
        return slot

    async def get_slot(self, actor: Actor, slot_id: int) -> Slot:
        async with self.uow_factory() as uow:
            return await self._load(uow, actor, slot_id)

    async def update_slot(self, actor: Actor, slot_id: int, changes: SlotChanges) -> Slot:
        async with self.uow_factory() as uow:
            slot = await self._load(uow, actor, slot_id)
            self._ensure_can_modify(slot, actor)

            if changes.slot_number is not None:
                if not changes.slot_number.strip():
                    raise ValidationError(RejectionReason.INVALID_ATTRIBUTES, "Slot number cannot be empty")
                slot.slot_number = changes.slot_number.strip()
            hourly_rate = changes.hourly_rate if changes.hourly_rate is not None else slot.hourly_rate
            daily_rate = changes.daily_rate if changes.daily_rate is not None else slot.daily_rate
            self._validate_rates(hourly_rate, daily_rate)
            slot.hourly_rate = hourly_rate
            slot.daily_rate = daily_rate
            if changes.is_listed_for_rent is not None:
                if slot.ownership_mode != OwnershipMode.OWNED and changes.is_listed_for_rent:
                    raise ValidationError(
                        RejectionReason.INVALID_ATTRIBUTES, "Only owned slots can be listed for rent"
                    )
                slot.is_listed_for_rent = changes.is_listed_for_rent
            if changes.description is not None:
                slot.description = changes.description

            slot = await uow.slots.update(slot)
            await uow.commit()

        logger.info(f"Slot {slot.id} updated by user {actor.user_id}")
        return slot

    async def transition_status(
        self, actor: Actor, slot_id: int, new_status: Union[SlotStatus, str]
    ) -> Slot:
        try:
            target = SlotStatus(new_status)
        except ValueError:
            raise ValidationError(
                RejectionReason.INVALID_STATUS,
                f"Invalid status. Must be one of {', '.join(s.value for s in SlotStatus)}",
            )

        async with self.uow_factory() as uow:
            slot = await self._load(uow, actor, slot_id)
            self._ensure_can_modify(slot, actor)
            ensure_slot_transition(slot.status, target)

            previous = slot.status
            slot.status = target
            slot = await uow.slots.update(slot)
            await uow.commit()

        logger.info(
            f"Slot {slot.id} status {SlotStatus(previous).value} -> {target.value} by user {actor.user_id}"
        )
        return slot

    async def relist_slot(
        self, actor: Actor, slot_id: int, available_from: datetime, available_until: datetime
    ) -> Slot:
        available_from = as_utc(available_from)
        available_until = as_utc(available_until)
        AvailabilityWindowTracker.validate_window(available_from, available_until)
        if available_until <= self.clock():
            raise ValidationError(RejectionReason.INVALID_WINDOW, "New availability window has already closed")

        async with self.uow_factory() as uow:
            slot = await self._load(uow, actor, slot_id)
            self._ensure_can_modify(slot, actor)
            if slot.status not in (SlotStatus.EXPIRED, SlotStatus.AVAILABLE):
                raise NotAllowedError(
                    RejectionReason.INVALID_TRANSITION,
                    f"Cannot relist a slot that is {SlotStatus(slot.status).value}",
                )

            slot.available_from = available_from
            slot.available_until = available_until
            slot.status = SlotStatus.AVAILABLE
            slot = await uow.slots.update(slot)
            await uow.commit()

        logger.info(f"Slot {slot.id} relisted until {available_until.isoformat()} by user {actor.user_id}")
        return slot

    async def list_available_slots(self, actor: Actor, filters: Optional[SlotFilters] = None) -> List[Slot]:
        filters = filters or SlotFilters()
        if (filters.start_time is None) != (filters.end_time is None):
            raise ValidationError(RejectionReason.INVALID_INTERVAL, "start_time and end_time must be given together")
        if filters.start_time is not None:
            filters = SlotFilters(
                slot_type=filters.slot_type,
                max_hourly_rate=filters.max_hourly_rate,
                start_time=as_utc(filters.start_time),
                end_time=as_utc(filters.end_time),
            )
            if filters.end_time <= filters.start_time:
                raise ValidationError(RejectionReason.INVALID_INTERVAL, "end_time must be after start_time")

        async with self.uow_factory() as uow:
            return await uow.slots.list_available(actor.community_code, actor.user_id, filters, self.clock())

    async def delete_slot(self, actor: Actor, slot_id: int) -> None:
        async with self.uow_factory() as uow:
            slot = await self._load(uow, actor, slot_id)
            self._ensure_can_modify(slot, actor)
            if await uow.bookings.count_for_slot(slot_id):
                raise ConflictError(RejectionReason.SLOT_HAS_BOOKINGS, "Cannot delete slot with bookings")
            await uow.slots.delete(slot_id)
            await uow.commit()

        logger.info(f"Slot {slot_id} deleted by user {actor.user_id}")

    # Helpers

    @staticmethod
    async def _load(uow: AbstractUnitOfWork, actor: Actor, slot_id: int) -> Slot:
        slot = await uow.slots.get_by_id(slot_id)
        # other communities' slots are invisible, not forbidden
        if slot is None or slot.community_code != actor.community_code:
            raise NotFoundError(RejectionReason.SLOT_NOT_FOUND, "Slot not found")
        return slot

    def _ensure_can_modify(self, slot: Slot, actor: Actor) -> None:
        decision = self.can_modify(slot, actor.user_id, actor.role)
        if not decision:
            logger.warning(f"User {actor.user_id} may not modify slot {slot.id}")
            raise NotAllowedError(decision.reason, decision.message)

    @staticmethod
    def _parse_slot_type(value) -> SlotType:
        try:
            return SlotType(value)
        except ValueError:
            raise ValidationError(
                RejectionReason.INVALID_ATTRIBUTES,
                f"Invalid slot type. Must be one of {', '.join(t.value for t in SlotType)}",
            )

    @staticmethod
    def _validate_rates(hourly_rate: Optional[float], daily_rate: Optional[float]) -> None:
        if hourly_rate is None and daily_rate is None:
            raise ValidationError(RejectionReason.MISSING_RATE, "At least one of hourly_rate or daily_rate is required")
        for rate in (hourly_rate, daily_rate):
            if rate is not None and rate < 0:
                raise ValidationError(RejectionReason.INVALID_RATE, "Rates must not be negative")
