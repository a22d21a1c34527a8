"""Client configuration endpoint — the trusted source the gateway loader reads.

Serves public client settings and the credential pools, one array per
category, built from the server environment. Blank slots are dropped.
"""

from fastapi import APIRouter

from healthgate.core.config import settings
from healthgate.gateway.types import CredentialPool
from healthgate.schemas.gateway import ClientConfigResponse

router = APIRouter(tags=["config"])


@router.get("/config", response_model=ClientConfigResponse)
async def client_config():
    pools = {
        category: list(CredentialPool.from_raw(category, raw).credentials)
        for category, raw in settings.credential_pools.items()
    }
    return ClientConfigResponse(firebaseConfig=settings.firebase_config, geminiApiKeys=pools)
