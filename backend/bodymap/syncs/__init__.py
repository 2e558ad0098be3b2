"""The synchronization catalog loaded at startup."""

from bodymap.syncs import (
    body_map_generation,
    breakthrough_tracking,
    map_management,
    map_summary_generation,
    pain_location_scoring,
    session_guard,
    user_authentication,
    user_onboarding,
)

ALL_SYNCS = [
    *user_authentication.SYNCS,
    *user_onboarding.SYNCS,
    *map_management.SYNCS,
    *body_map_generation.SYNCS,
    *pain_location_scoring.SYNCS,
    *map_summary_generation.SYNCS,
    *breakthrough_tracking.SYNCS,
    *session_guard.SYNCS,
]

__all__ = ["ALL_SYNCS"]
