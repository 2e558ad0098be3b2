"""REST API endpoints for inspecting and triggering the synchronization engine."""

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from bodymap.sync_engine import (
    FilterStep,
    MapStep,
    OperationRegistry,
    QueryStep,
    RuleRegistry,
    SyncEngine,
    SyncEngineError,
    SyncRule,
    UnknownOperationError,
)

router = APIRouter(prefix="/api/engine", tags=["engine"])

# Global engine components (initialized in main.py)
_engine: SyncEngine | None = None


def init_engine_api(engine: SyncEngine):
    """Initialize the engine API.

    Args:
        engine: SyncEngine instance owning the operations and the rule set
    """
    global _engine
    _engine = engine


def get_engine() -> SyncEngine:
    """Get the engine instance.

    Raises:
        HTTPException: If the engine is not initialized
    """
    if _engine is None:
        raise HTTPException(status_code=500, detail="Sync engine not initialized")
    return _engine


class InvokeRequest(BaseModel):
    """Request model for triggering an action from outside (timers, operators)."""

    module: str = Field(..., description="Module name (e.g., 'BodyMapGeneration')")
    operation: str = Field(..., description="Action name (e.g., 'triggerDailyMapGeneration')")
    inputs: dict[str, Any] = Field(default_factory=dict, description="Action inputs")


def _describe_step(step) -> dict[str, Any]:
    if isinstance(step, QueryStep):
        return {
            "type": "query",
            "query": f"{step.module}.{step.query}",
            "inputs": {k: repr(v) for k, v in step.inputs.items()},
            "outputs": {k: repr(v) for k, v in step.outputs.items()},
        }
    elif isinstance(step, FilterStep):
        return {"type": "filter", "description": step.description}
    elif isinstance(step, MapStep):
        return {"type": "map", "binds": list(step.binds), "description": step.description}
    return {"type": type(step).__name__}


def _describe_rule(rule: SyncRule) -> dict[str, Any]:
    return {
        "name": rule.name,
        "description": rule.description,
        "when": [repr(clause) for clause in rule.when],
        "where": [_describe_step(step) for step in rule.where],
        "then": [repr(clause) for clause in rule.then],
    }


@router.get("/rules")
async def list_rules() -> dict[str, Any]:
    """List every loaded synchronization."""
    rules: RuleRegistry = get_engine().rules
    return {
        "rules": [_describe_rule(rule) for rule in rules.get_all()],
        "count": len(rules),
        "frozen": rules.frozen,
    }


@router.get("/contracts")
async def list_contracts(module: str | None = None) -> dict[str, Any]:
    """List registered operation contracts, optionally for one module."""
    operations: OperationRegistry = get_engine().operations
    contracts = operations.list_by_module(module) if module else operations.list_all()
    return {
        "contracts": [
            {
                "module": c.module,
                "name": c.name,
                "kind": c.kind.value,
                "inputs": list(c.inputs),
                "required": list(c.required),
                "outputs": list(c.outputs),
                "extra_inputs": c.extra_inputs,
                "description": c.description,
            }
            for c in contracts
        ],
        "count": len(contracts),
    }


@router.post("/invoke")
async def invoke(request: InvokeRequest) -> dict[str, Any]:
    """Invoke an action and run the dispatch cycle it starts.

    Returns:
        The cycle report

    Raises:
        HTTPException: 404 for an unknown operation, 400 for a query or
            for opening a request, which only the request boundary may do
    """
    engine = get_engine()
    if (request.module, request.operation) == ("Requesting", "request"):
        raise HTTPException(status_code=400, detail="Requests are opened through POST /api/{path}")
    try:
        report = await engine.invoke(request.module, request.operation, request.inputs)
    except UnknownOperationError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SyncEngineError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return report.to_dict()
