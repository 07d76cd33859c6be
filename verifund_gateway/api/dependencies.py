"""Dependency injection for FastAPI endpoints"""

import uuid
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from verifund_gateway.infrastructure.clients.notifications import NotificationClient
from verifund_gateway.infrastructure.database.models import User
from verifund_gateway.infrastructure.database.repositories import UserRepository
from verifund_gateway.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_notification_client() -> NotificationClient:
    """Provide notification webhook client instance"""
    return NotificationClient()


def get_actor(
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the authenticated user forwarded by the auth layer"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-ID header")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-ID header")

    user = UserRepository(db).get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user
