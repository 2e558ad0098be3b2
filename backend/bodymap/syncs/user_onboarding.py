"""New users start with a body map."""

from bodymap.sync_engine import sync
from bodymap.syncs.common import BodyMapGeneration, UserAuthentication, user

GenerateFirstMapOnRegistration = sync(
    "GenerateFirstMapOnRegistration",
    when=[UserAuthentication.register({}, {"user": user})],
    then=[BodyMapGeneration.generateMap({"user": user})],
)

SYNCS = [GenerateFirstMapOnRegistration]
