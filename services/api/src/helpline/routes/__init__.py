"""Router aggregation."""

from fastapi import APIRouter

from services.api.src.helpline.routes.agent import router as agent_router
from services.api.src.helpline.routes.audio import router as audio_router
from services.api.src.helpline.routes.auth import router as auth_router
from services.api.src.helpline.routes.messages import router as messages_router
from services.api.src.helpline.routes.realtime import router as realtime_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/api/helpline/auth", tags=["auth"])
api_router.include_router(messages_router, prefix="/api/helpline", tags=["messages"])
api_router.include_router(agent_router, prefix="/api/helpline/agent", tags=["agent"])
api_router.include_router(audio_router, prefix="/api/helpline", tags=["audio"])
api_router.include_router(realtime_router, prefix="/api/helpline", tags=["realtime"])
