import enum
import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from ..databases.database import Base
from .clock import utcnow


class Role(str, enum.Enum):
    REGULAR = "regular"
    ADMIN = "admin"


# User model. `password` holds the bcrypt hash, never the plaintext.
class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(254), unique=True, index=True, nullable=False)
    password = Column(String(100), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default=Role.REGULAR.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tasks = relationship("Task", back_populates="owner", cascade="all, delete-orphan")
