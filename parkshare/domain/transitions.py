from typing import Dict, FrozenSet

from parkshare.domain.common import BookingStatus, SlotStatus
from parkshare.domain.errors import NotAllowedError, RejectionReason


BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    # accepted as a non-blocking state only; nothing here moves it on
    BookingStatus.PENDING: frozenset(),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW,
    }),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

# EXPIRED has no way out here: a lapsed listing comes back only through relisting.
SLOT_TRANSITIONS: Dict[SlotStatus, FrozenSet[SlotStatus]] = {
    SlotStatus.AVAILABLE: frozenset({
        SlotStatus.MAINTENANCE, SlotStatus.RESERVED, SlotStatus.TAKEN, SlotStatus.EXPIRED,
    }),
    SlotStatus.MAINTENANCE: frozenset({SlotStatus.AVAILABLE, SlotStatus.RESERVED, SlotStatus.TAKEN}),
    SlotStatus.RESERVED: frozenset({SlotStatus.AVAILABLE, SlotStatus.MAINTENANCE, SlotStatus.TAKEN}),
    SlotStatus.TAKEN: frozenset({SlotStatus.AVAILABLE, SlotStatus.MAINTENANCE, SlotStatus.RESERVED}),
    SlotStatus.EXPIRED: frozenset(),
}


def can_transition_booking(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS[BookingStatus(current)]


def can_transition_slot(current: SlotStatus, target: SlotStatus) -> bool:
    current = SlotStatus(current)
    target = SlotStatus(target)
    return current == target or target in SLOT_TRANSITIONS[current]


def ensure_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    if not can_transition_booking(current, target):
        raise NotAllowedError(
            RejectionReason.INVALID_TRANSITION,
            f"Cannot move booking from {BookingStatus(current).value} to {BookingStatus(target).value}",
        )


def ensure_slot_transition(current: SlotStatus, target: SlotStatus) -> None:
    if not can_transition_slot(current, target):
        raise NotAllowedError(
            RejectionReason.INVALID_TRANSITION,
            f"Cannot move slot from {SlotStatus(current).value} to {SlotStatus(target).value}",
        )
