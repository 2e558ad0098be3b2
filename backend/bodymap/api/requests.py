"""The HTTP request boundary: every POST becomes a Requesting.request action."""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from bodymap.concepts import Requesting
from bodymap.core.config import settings
from bodymap.sync_engine import OperationKind, SyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["requests"])

# Global request boundary (initialized in main.py)
_engine: SyncEngine | None = None
_requesting: Requesting | None = None


def init_requests_api(engine: SyncEngine, requesting: Requesting):
    """Initialize the request boundary.

    Args:
        engine: SyncEngine that runs the cycle each request starts
        requesting: The Requesting concept registered with that engine
    """
    global _engine, _requesting
    _engine = engine
    _requesting = requesting


def _components() -> tuple[SyncEngine, Requesting]:
    if _engine is None or _requesting is None:
        raise HTTPException(status_code=500, detail="Request boundary not initialized")
    return _engine, _requesting


async def _passthrough(engine: SyncEngine, route: str, payload: dict[str, Any]) -> list:
    """Serve ``/Module/_query`` directly from the query contract."""
    module, _, query_name = route.strip("/").partition("/")
    contract = engine.operations.lookup(module, query_name)
    if contract is None or contract.kind is not OperationKind.QUERY:
        raise HTTPException(status_code=404, detail=f"Unknown route {route}")
    return await engine.operations.query(module, query_name, payload)


@router.post("/{path:path}")
async def handle_request(path: str, payload: dict[str, Any] | None = Body(default=None)) -> Any:
    """Start a request cycle and wait for whichever sync responds to it.

    Raises:
        HTTPException: 400 when the response carries an error, 504 when no
            sync responded in time
    """
    engine, requesting = _components()
    route = "/" + path.strip("/")
    payload = dict(payload or {})

    if route in settings.SYNC_PASSTHROUGH_ROUTES:
        return await _passthrough(engine, route, payload)

    occurrence = await engine.operations.invoke("Requesting", "request", {**payload, "path": route})
    if occurrence.failed:
        raise HTTPException(status_code=400, detail=occurrence.error)

    request_id = occurrence.outputs["request"]
    try:
        report = await engine.dispatch(occurrence)
        for diagnostic in report.diagnostics:
            logger.error(f"{route}: {diagnostic.kind} in {diagnostic.rule}: {diagnostic.error}")
        response = await requesting.wait_for_response(request_id, settings.REQUEST_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(f"No response to {route} within {settings.REQUEST_TIMEOUT_SECONDS}s")
        raise HTTPException(status_code=504, detail=f"Request to {route} timed out")
    finally:
        requesting.discard(request_id)

    if "error" in response:
        raise HTTPException(status_code=400, detail=response["error"])
    return response
