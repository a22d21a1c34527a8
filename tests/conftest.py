from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from healthgate.core.config import settings

# Override settings for tests
settings.app_env = "development"
settings.gateway_config_url = ""

from healthgate.main import app  # noqa: E402
from tests.helpers import build_gateway  # noqa: E402


@pytest.fixture
def api_gateway():
    """Gateway installed on the app for API tests (the lifespan does not run under ASGITransport)."""
    gateway = build_gateway(
        {"analyzer": ["keyA", "keyB", "keyC"], "dashboard": ["dashKey1"], "food": ["", None]},
        cooldown_ms=0,
        default_category="dashboard",
    )
    app.state.gateway = gateway
    return gateway


@pytest.fixture
async def client(api_gateway) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
