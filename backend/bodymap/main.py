# backend/bodymap/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bodymap.api import engine as engine_api
from bodymap.api import requests as requests_api
from bodymap.core.config import settings
from bodymap.core.database import async_session, init_db
from bodymap.services.runtime import build_runtime

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Body Map API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    await init_db()

    runtime = build_runtime(async_session)

    # Initialize API modules
    engine_api.init_engine_api(runtime.engine)
    requests_api.init_requests_api(runtime.engine, runtime.requesting)

    # Store in app state for access
    app.state.runtime = runtime
    app.state.sync_engine = runtime.engine
    app.state.rule_registry = runtime.rules
    app.state.operation_registry = runtime.operations

    logger.info(
        f"Sync engine ready: {len(runtime.rules)} rules, "
        f"max {runtime.engine.max_generations} generations"
    )


# The engine router must come first: the request boundary catches every other POST under /api
app.include_router(engine_api.router)
app.include_router(requests_api.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


def run():
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
