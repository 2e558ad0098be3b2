# Database models, one group of tables per concept
from bodymap.models.user import User, UserSession
from bodymap.models.body_map import BodyMap, DailyGenerationStatus, MapOwner
from bodymap.models.pain_region import PainRegion, TrackedMap
from bodymap.models.summary import RegionSummary
from bodymap.models.breakthrough import Breakthrough

__all__ = [
    "User",
    "UserSession",
    "BodyMap",
    "DailyGenerationStatus",
    "MapOwner",
    "PainRegion",
    "TrackedMap",
    "RegionSummary",
    "Breakthrough",
]
