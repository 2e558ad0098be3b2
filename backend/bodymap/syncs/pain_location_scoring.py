"""Adding, scoring and deleting pain regions for the session's user."""

from bodymap.sync_engine import Var, sync
from bodymap.syncs.common import (
    PainLocationScoring,
    requested,
    responses,
    session,
    session_guard,
    user,
)

body_map, region_name, region, score = Var("map"), Var("regionName"), Var("region"), Var("score")

HandleAddRegionRequest = sync(
    "HandleAddRegionRequest",
    when=[requested("/region/add", session=session, map=body_map, regionName=region_name)],
    where=session_guard(),
    then=[PainLocationScoring.addRegion({"user": user, "map": body_map, "regionName": region_name})],
)

HandleScoreRegionRequest = sync(
    "HandleScoreRegionRequest",
    when=[requested("/region/score", session=session, region=region, score=score)],
    where=session_guard(),
    then=[PainLocationScoring.scoreRegion({"user": user, "region": region, "score": score})],
)

HandleDeleteRegionRequest = sync(
    "HandleDeleteRegionRequest",
    when=[requested("/region/delete", session=session, region=region)],
    where=session_guard(),
    then=[PainLocationScoring.deleteRegion({"user": user, "region": region})],
)

SYNCS = [
    HandleAddRegionRequest,
    *responses("HandleAddRegion", "/region/add", PainLocationScoring.addRegion, {"region": region}),
    HandleScoreRegionRequest,
    *responses("HandleScoreRegion", "/region/score", PainLocationScoring.scoreRegion, {}),
    HandleDeleteRegionRequest,
    *responses("HandleDeleteRegion", "/region/delete", PainLocationScoring.deleteRegion, {}),
]
