"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from pressing_gateway.infrastructure.clients.notification import NotificationClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_notification_client() -> NotificationClient:
    """Provide notification gateway client instance"""
    return NotificationClient()
