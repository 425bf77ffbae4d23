from fastapi import APIRouter

from voice_relay.api.v1.endpoints import relay

api_v1_router = APIRouter()

api_v1_router.include_router(relay.router, prefix="/relay", tags=["relay"])
