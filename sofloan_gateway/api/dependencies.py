"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from sofloan_gateway.infrastructure.clients.zumrails import ZumrailsClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_zumrails_client() -> ZumrailsClient:
    """Provide Zumrails aggregation client instance"""
    return ZumrailsClient()
