# backend/bodymap/models/breakthrough.py
from datetime import datetime
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from bodymap.core.database import Base


class Breakthrough(Base):
    """A breakthrough pain episode; ongoing while end_time is NULL."""
    __tablename__ = "breakthroughs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    month_id: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def to_state(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "monthId": self.month_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
        }
