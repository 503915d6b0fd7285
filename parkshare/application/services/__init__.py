from .availability_tracker import AvailabilityWindowTracker
from .booking_service import BookingService
from .conflict_detector import ConflictDetector
from .policy import BookingPolicy
from .pricing_engine import PricingEngine, PriceQuote, FeeSplit
from .slot_registry import SlotRegistry

__all__ = [
    "AvailabilityWindowTracker",
    "BookingService",
    "ConflictDetector",
    "BookingPolicy",
    "PricingEngine",
    "PriceQuote",
    "FeeSplit",
    "SlotRegistry",
]
