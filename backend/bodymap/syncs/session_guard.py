"""Answers protected requests whose session is missing or no longer active."""

from bodymap.sync_engine import FilterStep, QueryStep, Var, sync
from bodymap.syncs.common import SESSION_REJECTED, Requesting, request, requested, session, session_is_active

path, state = Var("path"), Var("sessionState")

PROTECTED_PATHS = frozenset(
    {
        "/auth/logout",
        "/auth/user/maps",
        "/map/save",
        "/map/clear",
        "/map/generate",
        "/map/current",
        "/maps/saved",
        "/region/add",
        "/region/score",
        "/region/delete",
        "/summary/generate",
        "/summary/get",
        "/summaries/user",
        "/breakthrough/start",
        "/breakthrough/end",
        "/breakthrough/edit",
        "/breakthrough/delete",
        "/breakthrough/summary",
        "/breakthrough/list",
    }
)

RejectInactiveSession = sync(
    "RejectInactiveSession",
    when=[Requesting.request({"path": path, "session": session}, {"request": request})],
    where=[
        FilterStep(
            lambda frame: frame["path"] in PROTECTED_PATHS,
            description="path needs a session",
            reads=("path",),
        ),
        QueryStep("UserAuthentication", "_getSession", {"session": session}, {"session": state}),
        FilterStep(
            lambda frame: not session_is_active(frame["sessionState"]),
            description="session inactive",
            reads=("sessionState",),
        ),
    ],
    then=[Requesting.respond({"request": request, "error": SESSION_REJECTED})],
)

SYNCS = [RejectInactiveSession]
