"""Saving, clearing and reading body maps, plus the daily generation fan-out."""

from bodymap.sync_engine import QueryStep, Var, sync
from bodymap.syncs.common import (
    BodyMapGeneration,
    Requesting,
    request,
    requested,
    responses,
    session,
    session_guard,
    user,
)

body_map, maps, date = Var("map"), Var("maps"), Var("date")

HandleSaveMapRequest = sync(
    "HandleSaveMapRequest",
    when=[requested("/map/save", session=session)],
    where=session_guard(),
    then=[BodyMapGeneration.saveMap({"user": user})],
)

HandleClearMapRequest = sync(
    "HandleClearMapRequest",
    when=[requested("/map/clear", session=session)],
    where=session_guard(),
    then=[BodyMapGeneration.clearMap({"user": user})],
)

HandleGenerateMapRequest = sync(
    "HandleGenerateMapRequest",
    when=[requested("/map/generate", session=session)],
    where=session_guard(),
    then=[BodyMapGeneration.generateMap({"user": user})],
)

HandleGetCurrentMapRequest = sync(
    "HandleGetCurrentMapRequest",
    when=[requested("/map/current", session=session)],
    where=[
        *session_guard(),
        QueryStep("BodyMapGeneration", "_getCurrentMap", {"user": user}, {"map": body_map}),
    ],
    then=[Requesting.respond({"request": request, "map": body_map})],
)

HandleGetSavedMapsRequest = sync(
    "HandleGetSavedMapsRequest",
    when=[requested("/maps/saved", session=session)],
    where=[
        *session_guard(),
        QueryStep("BodyMapGeneration", "_getSavedMaps", {"user": user}, {"maps": maps}),
    ],
    then=[Requesting.respond({"request": request, "maps": maps})],
)

GenerateDailyMaps = sync(
    "GenerateDailyMaps",
    when=[BodyMapGeneration.triggerDailyMapGeneration({}, {"date": date})],
    where=[QueryStep("BodyMapGeneration", "_getUsers", {}, {"user": user})],
    then=[BodyMapGeneration.generateMap({"user": user})],
    description="One new map per known user; the previous current map is saved.",
)

SYNCS = [
    HandleSaveMapRequest,
    *responses("HandleSaveMap", "/map/save", BodyMapGeneration.saveMap, {}),
    HandleClearMapRequest,
    *responses("HandleClearMap", "/map/clear", BodyMapGeneration.clearMap, {}),
    HandleGenerateMapRequest,
    *responses("HandleGenerateMap", "/map/generate", BodyMapGeneration.generateMap, {"mapId": Var("mapId")}),
    HandleGetCurrentMapRequest,
    HandleGetSavedMapsRequest,
    GenerateDailyMaps,
]
