"""Concept references and rule fragments shared by the sync catalog."""

from collections.abc import Mapping
from typing import Any, Callable

from bodymap.sync_engine import (
    Clause,
    ConceptRef,
    FilterStep,
    QueryStep,
    SyncRule,
    Var,
    project,
    sync,
)

UserAuthentication = ConceptRef("UserAuthentication")
BodyMapGeneration = ConceptRef("BodyMapGeneration")
PainLocationScoring = ConceptRef("PainLocationScoring")
MapSummaryGeneration = ConceptRef("MapSummaryGeneration")
BreakThroughTracking = ConceptRef("BreakThroughTracking")
Requesting = ConceptRef("Requesting")

request = Var("request")
session = Var("session")
user = Var("user")
error = Var("error")

SESSION_REJECTED = "Session is not valid or has expired."


def session_is_active(state: Any) -> bool:
    return isinstance(state, Mapping) and bool(state.get("active"))


def session_guard(session_var: str = "session", user_var: str = "user", state_var: str = "sessionState") -> tuple:
    """Pipeline steps: look the session up, keep it only if active, bind its owner."""
    return (
        QueryStep(
            "UserAuthentication",
            "_getSession",
            {"session": Var(session_var)},
            {"session": Var(state_var)},
        ),
        FilterStep(
            lambda frame: session_is_active(frame[state_var]),
            description="session is active",
            reads=(state_var,),
        ),
        project(state_var, "userId", user_var),
    )


def requested(path: str, **fields: Any) -> Clause:
    """Trigger clause for a request on ``path`` binding ``request``."""
    return Requesting.request({"path": path, **fields}, {"request": request})


def responses(
    prefix: str,
    path: str,
    operation: Callable[..., Clause],
    success: Mapping[str, Any],
    reply: Mapping[str, Any] | None = None,
) -> list[SyncRule]:
    """The success and error response rules for an action requested on ``path``.

    ``success`` is the output pattern of the successful action and ``reply``
    what is sent back for it; the failure's error message is sent back as is.
    """
    if reply is None:
        reply = dict(success) or {"result": {}}
    return [
        sync(
            f"{prefix}Response",
            when=(requested(path), operation({}, success)),
            then=(Requesting.respond({"request": request, **reply}),),
        ),
        sync(
            f"{prefix}ErrorResponse",
            when=(requested(path), operation({}, {"error": error})),
            then=(Requesting.respond({"request": request, "error": error}),),
        ),
    ]
