"""Generating and reading region summaries for the session's user."""

from bodymap.sync_engine import FilterStep, QueryStep, Var, sync
from bodymap.syncs.common import (
    MapSummaryGeneration,
    Requesting,
    request,
    requested,
    responses,
    session,
    session_guard,
    user,
)

summary, summary_id, summaries = Var("summary"), Var("summaryId"), Var("summaries")
region_name, start, end = Var("regionName"), Var("start"), Var("end")
maps, scores = Var("maps"), Var("scores")

SUMMARY_NOT_FOUND = "Summary not found."


def _owned_by_user(frame) -> bool:
    found = frame["summary"]
    return found is not None and found.get("userId") == frame["user"]


HandleGenerateSummaryRequest = sync(
    "HandleGenerateSummaryRequest",
    when=[requested("/summary/generate", session=session, regionName=region_name, start=start, end=end)],
    where=[
        *session_guard(),
        QueryStep(
            "BodyMapGeneration",
            "_getMapsForUser",
            {"user": user, "start": start, "end": end},
            {"maps": maps},
        ),
        QueryStep(
            "PainLocationScoring",
            "_getScoresForRegion",
            {"user": user, "maps": maps, "regionName": region_name},
            {"scores": scores},
        ),
    ],
    then=[
        MapSummaryGeneration.generateAndStoreSummary(
            {"user": user, "start": start, "end": end, "regionName": region_name, "scores": scores}
        )
    ],
    description="Joins the user's maps in the period with the region's scores on them.",
)

HandleGetSummaryRequest = sync(
    "HandleGetSummaryRequest",
    when=[requested("/summary/get", session=session, summaryId=summary_id)],
    where=[
        *session_guard(),
        QueryStep("MapSummaryGeneration", "_getSummary", {"summaryId": summary_id}, {"summary": summary}),
        FilterStep(_owned_by_user, description="summary belongs to the user", reads=("summary", "user")),
    ],
    then=[Requesting.respond({"request": request, "summary": summary})],
)

HandleGetSummaryNotFound = sync(
    "HandleGetSummaryNotFound",
    when=[requested("/summary/get", session=session, summaryId=summary_id)],
    where=[
        *session_guard(),
        QueryStep("MapSummaryGeneration", "_getSummary", {"summaryId": summary_id}, {"summary": summary}),
        FilterStep(
            lambda frame: not _owned_by_user(frame),
            description="summary missing or not the user's",
            reads=("summary", "user"),
        ),
    ],
    then=[Requesting.respond({"request": request, "error": SUMMARY_NOT_FOUND})],
)

HandleGetUserSummariesRequest = sync(
    "HandleGetUserSummariesRequest",
    when=[requested("/summaries/user", session=session)],
    where=[
        *session_guard(),
        QueryStep("MapSummaryGeneration", "_getUserSummaries", {"user": user}, {"summaries": summaries}),
    ],
    then=[Requesting.respond({"request": request, "summaries": summaries})],
)

SYNCS = [
    HandleGenerateSummaryRequest,
    *responses(
        "HandleGenerateSummary",
        "/summary/generate",
        MapSummaryGeneration.generateAndStoreSummary,
        {"summaryId": summary_id},
    ),
    HandleGetSummaryRequest,
    HandleGetSummaryNotFound,
    HandleGetUserSummariesRequest,
]
