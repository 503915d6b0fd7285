from .abstract_repositories import (
    AbstractUserRepository,
    AbstractSlotRepository,
    AbstractBookingRepository,
    AbstractEarningRepository,
    AbstractUnitOfWork,
)

__all__ = [
    "AbstractUserRepository",
    "AbstractSlotRepository",
    "AbstractBookingRepository",
    "AbstractEarningRepository",
    "AbstractUnitOfWork",
]
