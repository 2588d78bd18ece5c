from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_uid = Column(String(255), unique=True, index=True, nullable=False)  # JWT "sub" claim
    email = Column(String(255), index=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    proposals = relationship("Proposal", back_populates="user", cascade="all, delete-orphan")


class Proposal(Base):
    """
    Commercial proposal. Only the columns the calendar pipeline writes when
    converting a meeting lead live here; the editor owns the rest.
    """

    __tablename__ = "proposals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_name = Column(String(255), nullable=False)
    client_company = Column(String(255), nullable=True)
    status = Column(String(50), default="new_lead", nullable=False)  # kanban column
    monthly_value = Column(Float, default=0, nullable=False)
    setup_value = Column(Float, default=0, nullable=False)
    total_value = Column(Float, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="proposals")
