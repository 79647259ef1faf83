"""SQLAlchemy model for the User domain."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from autotask.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(100), unique=True, nullable=False)
    name = Column(String(50))
    role = Column(String(20), nullable=False, default="user")  # admin/user
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    notifications = relationship("Notification", back_populates="user")

    @property
    def display_name(self) -> str:
        return self.name or (self.email or "").split("@")[0]

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
