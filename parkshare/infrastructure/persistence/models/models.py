from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text,
)
from sqlalchemy.orm import declarative_base, relationship

from parkshare.shared.custom_types import UTCDateTime

Base = declarative_base()


def _utc_now():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    community_code = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False, default="resident")  # resident, admin
    created_at = Column(UTCDateTime, default=_utc_now)

    slots = relationship("Slot", back_populates="owner")
    bookings = relationship("Booking", back_populates="renter")


class Slot(Base):
    __tablename__ = "slots"
    __table_args__ = (
        UniqueConstraint("community_code", "slot_number", name="uq_slots_community_number"),
        CheckConstraint(
            "available_until IS NULL OR available_from IS NULL OR available_until > available_from",
            name="ck_slots_window",
        ),
        CheckConstraint("hourly_rate IS NULL OR hourly_rate >= 0", name="ck_slots_hourly_rate"),
        CheckConstraint("daily_rate IS NULL OR daily_rate >= 0", name="ck_slots_daily_rate"),
        Index("ix_slots_status_until", "status", "available_until"),
    )

    id = Column(Integer, primary_key=True, index=True)
    community_code = Column(String, nullable=False, index=True)
    slot_number = Column(String, nullable=False)
    slot_type = Column(String, nullable=False, default="uncovered")  # covered, uncovered, tandem, visitor
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    is_listed_for_rent = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default="available")
    hourly_rate = Column(Float, nullable=True)
    daily_rate = Column(Float, nullable=True)
    available_from = Column(UTCDateTime, nullable=True)
    available_until = Column(UTCDateTime, nullable=True)
    description = Column(Text, nullable=True)
    reservation_seq = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, default=_utc_now)
    updated_at = Column(UTCDateTime, default=_utc_now, onupdate=_utc_now)

    owner = relationship("User", back_populates="slots")
    bookings = relationship("Booking", back_populates="slot")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_bookings_interval"),
        Index("ix_bookings_slot_overlap", "slot_id", "status", "start_time", "end_time"),
        # Two racing writers for the same slot and start can never both land.
        Index(
            "uq_bookings_confirmed_slot_start",
            "slot_id",
            "start_time",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id"), nullable=False)
    renter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    status = Column(String, nullable=False, default="confirmed")
    total_amount = Column(Float, nullable=False)
    hourly_rate_snapshot = Column(Float, nullable=True)
    daily_rate_snapshot = Column(Float, nullable=True)
    payment_status = Column(String, nullable=False, default="pending")  # pending, completed, failed, refunded
    cancelled_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=_utc_now)
    updated_at = Column(UTCDateTime, default=_utc_now, onupdate=_utc_now)

    slot = relationship("Slot", back_populates="bookings")
    renter = relationship("User", back_populates="bookings")
    earning = relationship("Earning", back_populates="booking", uselist=False)

    @property
    def duration_hours(self):
        return (self.end_time - self.start_time).total_seconds() / 3600


class Earning(Base):
    __tablename__ = "earnings"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_earnings_amount"),
        CheckConstraint("platform_fee >= 0", name="ck_earnings_fee"),
        CheckConstraint("owner_payout >= 0", name="ck_earnings_payout"),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)
    slot_id = Column(Integer, ForeignKey("slots.id"), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    amount = Column(Float, nullable=False)
    platform_fee = Column(Float, nullable=False, default=0.0)
    owner_payout = Column(Float, nullable=False)
    payment_status = Column(String, nullable=False, default="pending")
    created_at = Column(UTCDateTime, default=_utc_now)

    booking = relationship("Booking", back_populates="earning")
