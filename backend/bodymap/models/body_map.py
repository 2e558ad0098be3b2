# backend/bodymap/models/body_map.py
from datetime import date, datetime
from sqlalchemy import Boolean, Date, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from bodymap.core.database import Base


DEFAULT_MAP_IMAGE = "default_map_image.png"


class MapOwner(Base):
    """A user as seen by BodyMapGeneration, with a pointer to the current map."""
    __tablename__ = "body_map_users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    current_map_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class BodyMap(Base):
    __tablename__ = "body_maps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    creation_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    is_saved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    image_url: Mapped[str] = mapped_column(String(500), default=DEFAULT_MAP_IMAGE, nullable=False)

    def to_state(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "creationDate": self.creation_date.isoformat(),
            "isSaved": self.is_saved,
            "imageUrl": self.image_url,
        }


class DailyGenerationStatus(Base):
    """Single-row bookkeeping for the timer-driven daily generation."""
    __tablename__ = "body_map_system"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_run_date: Mapped[date | None] = mapped_column(Date, nullable=True)
