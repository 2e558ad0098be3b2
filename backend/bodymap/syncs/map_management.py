"""Keeps PainLocationScoring informed of map ownership."""

from bodymap.sync_engine import Var, sync
from bodymap.syncs.common import BodyMapGeneration, PainLocationScoring, user

map_id = Var("mapId")

TrackMapOwnershipForScoring = sync(
    "TrackMapOwnershipForScoring",
    when=[BodyMapGeneration.generateMap({"user": user}, {"mapId": map_id})],
    then=[PainLocationScoring.trackMap({"user": user, "map": map_id})],
    description="Region actions are only accepted on maps tracked for their user.",
)

SYNCS = [TrackMapOwnershipForScoring]
