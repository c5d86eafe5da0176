from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.core.database import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    neighborhood = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    subscription_status = Column(String(20), nullable=False, default="trial")
    max_employees = Column(Integer, nullable=True)
    goals = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    restaurant_profiles = relationship("RestaurantProfile", back_populates="organization")
    promotions = relationship("Promotion", back_populates="organization", cascade="all, delete-orphan")
