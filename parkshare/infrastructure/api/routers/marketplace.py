from datetime import datetime
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response

from parkshare.application.repositories import AbstractUnitOfWork
from parkshare.application.services import AvailabilityWindowTracker, BookingService, SlotRegistry
from parkshare.domain.common import BookingStatus, SlotType, UserRole
from parkshare.domain.entities import Actor, SlotAttributes, SlotChanges, SlotFilters
from parkshare.infrastructure.api.schemas.marketplace import (
    BookingCreate, BookingResponse, EarningResponse, ErrorResponse, SlotCreate, SlotRelist, SlotResponse,
    SlotStatusChange, SlotUpdate, SweepResult,
)
from parkshare.infrastructure.persistence.database import get_uow_factory

router = APIRouter(
    prefix="/api",
    tags=["marketplace"],
    responses={code: {"model": ErrorResponse} for code in (400, 403, 404, 409, 503)},
)


def get_actor(
    x_user_id: Optional[int] = Header(default=None),
    x_community_code: Optional[str] = Header(default=None),
    x_user_role: UserRole = Header(default=UserRole.RESIDENT),
) -> Actor:
    """Identity as forwarded by the auth gateway.

    These headers are trusted as-is, so the gateway must strip or overwrite any
    client-supplied X-User-Id, X-Community-Code and X-User-Role.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not x_community_code:
        raise HTTPException(status_code=403, detail="No community assigned")
    return Actor(user_id=x_user_id, community_code=x_community_code, role=x_user_role)


def get_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return actor


def get_slot_registry(uow_factory: Callable[[], AbstractUnitOfWork] = Depends(get_uow_factory)) -> SlotRegistry:
    return SlotRegistry(uow_factory)


def get_booking_service(uow_factory: Callable[[], AbstractUnitOfWork] = Depends(get_uow_factory)) -> BookingService:
    return BookingService(uow_factory)


def get_availability_tracker(
    uow_factory: Callable[[], AbstractUnitOfWork] = Depends(get_uow_factory),
) -> AvailabilityWindowTracker:
    return AvailabilityWindowTracker(uow_factory)


# Slots

@router.get("/slots", response_model=List[SlotResponse])
async def list_available_slots(
    slot_type: Optional[SlotType] = None,
    max_hourly_rate: Optional[float] = None,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    actor: Actor = Depends(get_actor),
    registry: SlotRegistry = Depends(get_slot_registry),
):
    filters = SlotFilters(
        slot_type=slot_type, max_hourly_rate=max_hourly_rate, start_time=start_time, end_time=end_time
    )
    return await registry.list_available_slots(actor, filters)


@router.post("/slots", response_model=SlotResponse, status_code=201)
async def create_slot(
    slot_data: SlotCreate,
    actor: Actor = Depends(get_actor),
    registry: SlotRegistry = Depends(get_slot_registry),
):
    return await registry.create_slot(actor, SlotAttributes(**slot_data.model_dump()))


@router.get("/slots/{slot_id}", response_model=SlotResponse)
async def get_slot(
    slot_id: int,
    actor: Actor = Depends(get_actor),
    registry: SlotRegistry = Depends(get_slot_registry),
):
    return await registry.get_slot(actor, slot_id)


@router.patch("/slots/{slot_id}", response_model=SlotResponse)
async def update_slot(
    slot_id: int,
    changes: SlotUpdate,
    actor: Actor = Depends(get_actor),
    registry: SlotRegistry = Depends(get_slot_registry),
):
    return await registry.update_slot(actor, slot_id, SlotChanges(**changes.model_dump(exclude_unset=True)))


@router.delete("/slots/{slot_id}", status_code=204)
async def delete_slot(
    slot_id: int,
    actor: Actor = Depends(get_actor),
    registry: SlotRegistry = Depends(get_slot_registry),
):
    await registry.delete_slot(actor, slot_id)
    return Response(status_code=204)


@router.post("/slots/{slot_id}/status", response_model=SlotResponse)
async def change_slot_status(
    slot_id: int,
    change: SlotStatusChange,
    actor: Actor = Depends(get_actor),
    registry: SlotRegistry = Depends(get_slot_registry),
):
    return await registry.transition_status(actor, slot_id, change.status)


@router.post("/slots/{slot_id}/relist", response_model=SlotResponse)
async def relist_slot(
    slot_id: int,
    window: SlotRelist,
    actor: Actor = Depends(get_actor),
    registry: SlotRegistry = Depends(get_slot_registry),
):
    return await registry.relist_slot(actor, slot_id, window.available_from, window.available_until)


# Bookings

@router.get("/bookings", response_model=List[BookingResponse])
async def list_my_bookings(
    status: Optional[BookingStatus] = None,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_booking_service),
):
    return await service.list_bookings_for_renter(actor, status)


@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(
    booking_data: BookingCreate,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_booking_service),
):
    return await service.create_booking(actor, booking_data.slot_id, booking_data.start_time, booking_data.end_time)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_booking_service),
):
    return await service.get_booking(actor, booking_id)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_booking_service),
):
    return await service.cancel_booking(actor, booking_id)


@router.post("/bookings/{booking_id}/no-show", response_model=BookingResponse)
async def mark_no_show(
    booking_id: int,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_booking_service),
):
    return await service.mark_no_show(actor, booking_id)


@router.get("/earnings", response_model=List[EarningResponse])
async def list_my_earnings(
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_booking_service),
):
    return await service.list_earnings_for_owner(actor)


# Scheduler triggers

@router.post("/maintenance/expire-slots", response_model=SweepResult)
async def expire_stale_slots(
    _: Actor = Depends(get_admin),
    tracker: AvailabilityWindowTracker = Depends(get_availability_tracker),
):
    return SweepResult(count=await tracker.expire_stale_slots())


@router.post("/maintenance/complete-bookings", response_model=SweepResult)
async def complete_finished_bookings(
    _: Actor = Depends(get_admin),
    service: BookingService = Depends(get_booking_service),
):
    return SweepResult(count=await service.complete_finished_bookings())
