from enum import Enum


class SlotType(str, Enum):
    COVERED = "covered"
    UNCOVERED = "uncovered"
    TANDEM = "tandem"
    VISITOR = "visitor"


class SlotStatus(str, Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    RESERVED = "reserved"
    TAKEN = "taken"
    EXPIRED = "expired"


class OwnershipMode(str, Enum):
    OWNED = "owned"
    SHARED = "shared"
    VISITOR = "visitor"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class UserRole(str, Enum):
    RESIDENT = "resident"
    ADMIN = "admin"
