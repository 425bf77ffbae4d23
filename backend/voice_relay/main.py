import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voice_relay.api.v1.router import api_v1_router
from voice_relay.core.config import settings
from voice_relay.services.session_config.flows import FlowStore
from voice_relay.services.session_config.resolver import SessionConfigResolver

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    flow_store = FlowStore(settings.FLOWS_DIR)
    app.state.resolver = SessionConfigResolver(flow_store, timezone_name=settings.REFERENCE_TIMEZONE)

    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set, every relay session will be refused")

    logger.info(
        "Voice relay initialized (model=%s, flows=%s, tasks=%s, timezone=%s)",
        settings.GEMINI_MODEL_ID,
        flow_store.directory,
        flow_store.available_tasks(),
        settings.REFERENCE_TIMEZONE,
    )

    yield

    logger.info("Voice relay shutting down")


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
def health_check():
    return {"status": "healthy"}
