import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.api.src.helpline.config import settings
from services.api.src.helpline.routes import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create collections on startup."""
    if settings.create_tables:
        from services.api.src.helpline.db.engine import get_engine, init_db
        init_db(get_engine())

    logger.info("helpline_api_started", extra={"pipeline_provider": settings.pipeline_provider})
    yield


app = FastAPI(title="Helpline Voice Messaging API", lifespan=lifespan)

# CORS for frontend
cors_origins = [
    "http://localhost:3000",
    "http://localhost:5000",
    "http://localhost:5173",
    "https://localhost:3000",
]

if settings.cors_origin:
    cors_origins.append(settings.cors_origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router)


@app.get("/")
def root() -> dict[str, str]:
    return {"service": "helpline-voice-api", "docs": "/docs"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
