from sqlalchemy import (
    Column, Integer, String, Date, Time, DateTime, ForeignKey, Float, JSON,
    Enum as SQLEnum, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship
from database import Base
import enum


class TripStatus(enum.Enum):
    OPEN = "open"
    FULL = "full"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = (
        UniqueConstraint("driver_id", "client_token", name="uq_trip_client_token"),
    )

    id = Column(Integer, primary_key=True, index=True)
    driver_id = Column(String(128), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    from_loc = Column(String(100), nullable=False, index=True)
    to_loc = Column(String(100), nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    price = Column(Float, nullable=False)
    seats_total = Column(Integer, nullable=False)
    seats_available = Column(Integer, nullable=False)
    status = Column(SQLEnum(TripStatus), default=TripStatus.OPEN, nullable=False, index=True)
    features = Column(JSON, nullable=False, default=list)  # ac, music, trunk, pet, smoke_free
    driver_lat = Column(Float, nullable=True)
    driver_lng = Column(Float, nullable=True)
    client_token = Column(String(64), nullable=True)  # idempotency key generated by the client
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    driver = relationship("Profile", back_populates="trips", lazy="joined")
    requests = relationship("TripRequest", back_populates="trip", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="trip", cascade="all, delete-orphan")
