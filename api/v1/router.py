from __future__ import annotations

from fastapi import APIRouter

from api.v1.endpoints import ai as ai_endpoints
from api.v1.endpoints import appointments as appointment_endpoints
from api.v1.endpoints import messages as message_endpoints
from api.v1.endpoints import realtime as realtime_endpoints


api_router = APIRouter()

api_router.include_router(ai_endpoints.router)
api_router.include_router(appointment_endpoints.router)
api_router.include_router(message_endpoints.router)
api_router.include_router(realtime_endpoints.router)
