# backend/bodymap/models/user.py
from datetime import datetime
from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column
from bodymap.core.database import Base


class User(Base):
    """A UserAuthentication identity."""
    __tablename__ = "auth_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class UserSession(Base):
    """A login session; inactive once the user logs out."""
    __tablename__ = "auth_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("auth_users.id"), nullable=False, index=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def to_state(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "active": self.active,
            "startTimestamp": self.start_timestamp.isoformat(),
        }
