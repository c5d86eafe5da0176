from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.database import Base

WORKER_POSITIONS = (
    "server",
    "bartender",
    "chef",
    "host",
    "manager",
    "barback",
    "busser",
    "cook",
    "dishwasher",
    "other",
)


class WorkerProfile(Base):
    __tablename__ = "worker_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True)

    name = Column(String, nullable=False)
    position = Column(String(20), nullable=False, default="other")
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User")
    claims = relationship("Claim", back_populates="worker")
