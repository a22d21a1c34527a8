from fastapi import APIRouter

from healthgate.api.v1.client_config import router as client_config_router
from healthgate.api.v1.proxy import router as proxy_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(client_config_router)
api_v1_router.include_router(proxy_router)
