"""Drives the full sync catalog through the Requesting boundary."""

import pytest

from bodymap.services.runtime import build_runtime


class RequestDriver:
    """Sends requests into the engine and reads back whatever was responded."""

    def __init__(self, runtime):
        self.runtime = runtime
        self.last_report = None

    async def __call__(self, path: str, **fields):
        report = await self.runtime.engine.invoke("Requesting", "request", {"path": path, **fields})
        self.last_report = report
        records = await self.runtime.operations.query(
            "Requesting", "_getResponse", {"request": report.trigger.outputs["request"]}
        )
        return records[0]["response"] if records else None

    async def sign_up(self, username: str, password: str = "secret") -> tuple[str, str]:
        """Register and log in; returns (user, session)."""
        await self("/auth/register", username=username, password=password)
        login = await self("/auth/login", username=username, password=password)
        return login["user"], login["session"]

    async def current_map(self, session: str) -> dict:
        return (await self("/map/current", session=session))["map"]

    def invoked(self, module: str, operation: str) -> list:
        return self.last_report.find(module, operation)


@pytest.fixture
def runtime(session_factory):
    return build_runtime(session_factory)


@pytest.fixture
def send(runtime):
    return RequestDriver(runtime)
