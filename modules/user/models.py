"""
User Module - Models
=====================
Customer and admin accounts share one table; `role` tells them apart.
"""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.sql import func
from config.database import Base


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # === Identity ===
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(20), default=UserRole.CUSTOMER.value, server_default="customer", nullable=False)
    is_active = Column(Boolean, default=True, server_default="true", nullable=False)

    # === Profile (prefills checkout) ===
    full_name = Column(String, nullable=True)
    phone_number = Column(String(20), nullable=True)

    # === Audit ===
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_users_created", "created_at"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    @property
    def primary_redirect(self) -> str:
        """Where to redirect after login."""
        return "/admin" if self.is_admin else "/"

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
