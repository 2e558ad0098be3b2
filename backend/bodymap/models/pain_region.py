# backend/bodymap/models/pain_region.py
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from bodymap.core.database import Base


class TrackedMap(Base):
    """Map ownership known to PainLocationScoring (fed by the trackMap sync)."""
    __tablename__ = "scoring_maps"

    map_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)


class PainRegion(Base):
    __tablename__ = "pain_regions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    map_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def to_state(self) -> dict:
        return {
            "id": self.id,
            "mapId": self.map_id,
            "userId": self.user_id,
            "name": self.name,
            "score": self.score,
        }
