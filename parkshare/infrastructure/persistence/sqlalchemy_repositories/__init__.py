from .sqlalchemy_repositories import (
    SQLAlchemyUserRepository,
    SQLAlchemySlotRepository,
    SQLAlchemyBookingRepository,
    SQLAlchemyEarningRepository,
)

__all__ = [
    "SQLAlchemyUserRepository",
    "SQLAlchemySlotRepository",
    "SQLAlchemyBookingRepository",
    "SQLAlchemyEarningRepository",
]
