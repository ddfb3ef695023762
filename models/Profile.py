from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Enum as SQLEnum, func
from sqlalchemy.orm import relationship
from database import Base
import enum


class ProfileRole(enum.Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"
    ADMIN = "admin"


class SubscriptionStatus(enum.Enum):
    INACTIVE = "inactive"
    PENDING = "pending"
    ACTIVE = "active"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(128), primary_key=True, index=True)  # uid del proveedor de identidad
    full_name = Column(String(150), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    role = Column(SQLEnum(ProfileRole), default=ProfileRole.PASSENGER, nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    subscription_status = Column(
        SQLEnum(SubscriptionStatus), default=SubscriptionStatus.INACTIVE, nullable=False, index=True
    )
    subscription_end_date = Column(DateTime(timezone=True), nullable=True)
    # Vehículo (solo conductores)
    car_brand = Column(String(60), nullable=True)
    car_model = Column(String(60), nullable=True)
    car_color = Column(String(40), nullable=True)
    car_plate = Column(String(20), nullable=True)
    # Reputación
    rating_average = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    trips_completed = Column(Integer, default=0, nullable=False)
    fcm_token = Column(String(500), nullable=True)  # Firebase Cloud Messaging token
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    trips = relationship("Trip", back_populates="driver")
    requests = relationship("TripRequest", back_populates="passenger")
