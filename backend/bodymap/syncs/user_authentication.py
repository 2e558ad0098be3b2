"""Registration, login, logout and the user's map list over the request boundary."""

from bodymap.sync_engine import QueryStep, Var, sync
from bodymap.syncs.common import (
    Requesting,
    UserAuthentication,
    request,
    requested,
    responses,
    session,
    session_guard,
    user,
)

username, password, maps = Var("username"), Var("password"), Var("maps")

HandleRegisterRequest = sync(
    "HandleRegisterRequest",
    when=[requested("/auth/register", username=username, password=password)],
    then=[UserAuthentication.register({"username": username, "password": password})],
    description="Registration needs no session.",
)

HandleLoginRequest = sync(
    "HandleLoginRequest",
    when=[requested("/auth/login", username=username, password=password)],
    then=[UserAuthentication.login({"username": username, "password": password})],
)

HandleLogoutRequest = sync(
    "HandleLogoutRequest",
    when=[requested("/auth/logout", session=session)],
    where=session_guard(),
    then=[UserAuthentication.logout({"session": session})],
)

HandleGetUserMapsRequest = sync(
    "HandleGetUserMapsRequest",
    when=[requested("/auth/user/maps", session=session)],
    where=[
        *session_guard(),
        QueryStep("BodyMapGeneration", "_getMapsForUser", {"user": user}, {"maps": maps}),
    ],
    then=[Requesting.respond({"request": request, "maps": maps})],
    description="Every map id owned by the session's user.",
)

SYNCS = [
    HandleRegisterRequest,
    *responses("HandleRegister", "/auth/register", UserAuthentication.register, {"user": user}),
    HandleLoginRequest,
    *responses(
        "HandleLogin",
        "/auth/login",
        UserAuthentication.login,
        {"session": session, "user": user, "username": username},
    ),
    HandleLogoutRequest,
    *responses("HandleLogout", "/auth/logout", UserAuthentication.logout, {}),
    HandleGetUserMapsRequest,
]
