"""Shared FastAPI dependencies."""

from fastapi import Request

from healthgate.gateway.gateway import AiGateway


def get_gateway(request: Request) -> AiGateway:
    """The process-wide gateway created in the app lifespan."""
    return request.app.state.gateway
