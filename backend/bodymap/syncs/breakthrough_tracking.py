"""Breakthrough pain episodes for the session's user."""

from bodymap.sync_engine import QueryStep, Var, sync
from bodymap.syncs.common import (
    BreakThroughTracking,
    Requesting,
    request,
    requested,
    responses,
    session,
    session_guard,
    user,
)

pain, month = Var("pain"), Var("month")
start_time, end_time, new_start, new_end = Var("startTime"), Var("endTime"), Var("newStart"), Var("newEnd")
frequency, avg_duration, summary = Var("frequency"), Var("avgDuration"), Var("summary")
breakthroughs = Var("breakthroughs")

HandleStartBreakthroughRequest = sync(
    "HandleStartBreakthroughRequest",
    when=[requested("/breakthrough/start", session=session, startTime=start_time, month=month)],
    where=session_guard(),
    then=[BreakThroughTracking.startBreakthrough({"user": user, "startTime": start_time, "month": month})],
)

HandleEndBreakthroughRequest = sync(
    "HandleEndBreakthroughRequest",
    when=[requested("/breakthrough/end", session=session, pain=pain, endTime=end_time)],
    where=session_guard(),
    then=[BreakThroughTracking.endBreakthrough({"user": user, "pain": pain, "endTime": end_time})],
)

HandleEditBreakthroughRequest = sync(
    "HandleEditBreakthroughRequest",
    when=[requested("/breakthrough/edit", session=session, pain=pain, newStart=new_start, newEnd=new_end)],
    where=session_guard(),
    then=[
        BreakThroughTracking.editBreakthrough(
            {"user": user, "pain": pain, "newStart": new_start, "newEnd": new_end}
        )
    ],
)

HandleDeleteBreakthroughRequest = sync(
    "HandleDeleteBreakthroughRequest",
    when=[requested("/breakthrough/delete", session=session, pain=pain)],
    where=session_guard(),
    then=[BreakThroughTracking.deleteBreakthrough({"user": user, "pain": pain})],
)

HandleSummariseBreakthroughsRequest = sync(
    "HandleSummariseBreakthroughsRequest",
    when=[requested("/breakthrough/summary", session=session, month=month)],
    where=session_guard(),
    then=[BreakThroughTracking.summarise({"user": user, "month": month})],
)

HandleListBreakthroughsRequest = sync(
    "HandleListBreakthroughsRequest",
    when=[requested("/breakthrough/list", session=session, month=month)],
    where=[
        *session_guard(),
        QueryStep(
            "BreakThroughTracking",
            "_getBreakthroughs",
            {"user": user, "month": month},
            {"breakthroughs": breakthroughs},
        ),
    ],
    then=[Requesting.respond({"request": request, "breakthroughs": breakthroughs})],
)

SYNCS = [
    HandleStartBreakthroughRequest,
    *responses("HandleStartBreakthrough", "/breakthrough/start", BreakThroughTracking.startBreakthrough, {"pain": pain}),
    HandleEndBreakthroughRequest,
    *responses("HandleEndBreakthrough", "/breakthrough/end", BreakThroughTracking.endBreakthrough, {"pain": pain}),
    HandleEditBreakthroughRequest,
    *responses("HandleEditBreakthrough", "/breakthrough/edit", BreakThroughTracking.editBreakthrough, {"pain": pain}),
    HandleDeleteBreakthroughRequest,
    *responses("HandleDeleteBreakthrough", "/breakthrough/delete", BreakThroughTracking.deleteBreakthrough, {}),
    HandleSummariseBreakthroughsRequest,
    *responses(
        "HandleSummariseBreakthroughs",
        "/breakthrough/summary",
        BreakThroughTracking.summarise,
        {"frequency": frequency, "avgDuration": avg_duration, "summary": summary},
    ),
    HandleListBreakthroughsRequest,
]
