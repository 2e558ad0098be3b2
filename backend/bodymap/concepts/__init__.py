"""Independent modules coupled only through synchronizations."""

from bodymap.concepts.user_authentication import UserAuthentication
from bodymap.concepts.body_map_generation import BodyMapGeneration
from bodymap.concepts.pain_location_scoring import PainLocationScoring
from bodymap.concepts.map_summary_generation import MapSummaryGeneration
from bodymap.concepts.breakthrough_tracking import BreakThroughTracking
from bodymap.concepts.requesting import Requesting

__all__ = [
    "UserAuthentication",
    "BodyMapGeneration",
    "PainLocationScoring",
    "MapSummaryGeneration",
    "BreakThroughTracking",
    "Requesting",
]
