"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Header, Request
from finance_tracker.infrastructure.clients.chat import ChatClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_id(x_user_id: str = Header(..., min_length=1)) -> str:
    """Caller identity, set by the upstream gateway"""
    return x_user_id


def get_profile_id(x_profile_id: Optional[str] = Header(None)) -> Optional[str]:
    """Active profile, when the user isolates data per profile"""
    return x_profile_id or None


def get_chat_client() -> ChatClient:
    """Provide chat notification client instance"""
    return ChatClient()
