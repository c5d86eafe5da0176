from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.database import Base

PROMOTION_STATUSES = ("draft", "active", "scheduled", "paused", "expired")


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(String, nullable=True)
    discount_type = Column(String(30), nullable=False)
    discount_value = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="draft", index=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)

    max_claims = Column(Integer, nullable=True)
    current_claims = Column(Integer, nullable=False, default=0)
    impressions = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization", back_populates="promotions")
    claims = relationship("Claim", back_populates="promotion", cascade="all, delete-orphan")
