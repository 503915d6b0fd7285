"""Rejections raised by the reservation engine.

Every error carries a ``reason`` so callers can tell one failed precondition
from another without parsing messages.
"""
from enum import Enum
from typing import Optional


class RejectionReason(str, Enum):
    # input
    START_IN_PAST = "start_in_past"
    INVALID_INTERVAL = "invalid_interval"
    DURATION_TOO_SHORT = "duration_too_short"
    DURATION_TOO_LONG = "duration_too_long"
    TOO_FAR_IN_ADVANCE = "too_far_in_advance"
    NON_POSITIVE_PRICE = "non_positive_price"
    MISSING_RATE = "missing_rate"
    INVALID_RATE = "invalid_rate"
    INVALID_WINDOW = "invalid_window"
    INVALID_STATUS = "invalid_status"
    INVALID_ATTRIBUTES = "invalid_attributes"
    DUPLICATE_SLOT_NUMBER = "duplicate_slot_number"
    # slot rules
    SLOT_NOT_AVAILABLE = "slot_not_available"
    SLOT_OWNED_BY_OTHER = "slot_owned_by_other"
    OUTSIDE_AVAILABILITY_WINDOW = "outside_availability_window"
    NOT_SLOT_MANAGER = "not_slot_manager"
    ADMIN_REQUIRED = "admin_required"
    INVALID_TRANSITION = "invalid_transition"
    # bookings
    BOOKING_CONFLICT = "booking_conflict"
    SLOT_HAS_BOOKINGS = "slot_has_bookings"
    NOT_BOOKING_PARTY = "not_booking_party"
    TOO_LATE_TO_CANCEL = "too_late_to_cancel"
    BOOKING_NOT_STARTED = "booking_not_started"
    BOOKING_NOT_FINISHED = "booking_not_finished"
    # lookups
    SLOT_NOT_FOUND = "slot_not_found"
    BOOKING_NOT_FOUND = "booking_not_found"
    USER_NOT_FOUND = "user_not_found"
    # store
    STORE_UNAVAILABLE = "store_unavailable"


class ParkingError(Exception):
    def __init__(self, reason: RejectionReason, message: Optional[str] = None):
        self.reason = reason
        self.message = message or reason.value.replace("_", " ")
        super().__init__(self.message)


class ValidationError(ParkingError, ValueError):
    """Malformed input; the caller must correct it before trying again."""


class ConflictError(ParkingError):
    """The requested window overlaps a confirmed booking on the slot."""

    def __init__(self, reason: RejectionReason = RejectionReason.BOOKING_CONFLICT, message: Optional[str] = None):
        super().__init__(reason, message or "Slot is already booked for this time period")


class NotAllowedError(ParkingError):
    """Ownership, status or business-rule rejection. Never retried."""


class NotFoundError(ParkingError):
    pass


class TransientStoreError(ParkingError):
    """The store failed mid-operation; nothing was written and the call may be retried."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(RejectionReason.STORE_UNAVAILABLE, message or "Storage temporarily unavailable")
