"""
Session lookup for the identity provider's tokens
"""
import secrets
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional

from fastapi import Depends, Request

from jobconnect.models.models import CurrentUser
from jobconnect.utils.exceptions import AuthenticationError
from jobconnect.utils.logging_config import get_logger

logger = get_logger(__name__)


class SessionStore(ABC):
    @abstractmethod
    async def get(self, token: str) -> Optional[CurrentUser]:
        ...

    @abstractmethod
    async def create(self, user: CurrentUser) -> str:
        ...

    @abstractmethod
    async def revoke(self, token: str) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """Process-scoped registry; sessions vanish on restart"""

    def __init__(self):
        self._sessions: Dict[str, CurrentUser] = {}

    async def get(self, token: str) -> Optional[CurrentUser]:
        return self._sessions.get(token)

    async def create(self, user: CurrentUser) -> str:
        token = secrets.token_urlsafe(32)
        self._sessions[token] = user
        return token

    async def revoke(self, token: str) -> None:
        self._sessions.pop(token, None)


class MongoSessionStore(SessionStore):
    """Sessions written to the ``sessions`` collection by the identity service"""

    def __init__(self, collection):
        self.collection = collection

    async def get(self, token: str) -> Optional[CurrentUser]:
        doc = await self.collection.find_one({"token": token, "revoked": {"$ne": True}})
        if not doc:
            return None
        expires_at = doc.get("expires_at")
        if expires_at and expires_at < datetime.utcnow():
            return None
        return CurrentUser(**doc["user"])

    async def create(self, user: CurrentUser) -> str:
        token = secrets.token_urlsafe(32)
        await self.collection.insert_one({
            "token": token,
            "user": user.model_dump(mode="json"),
            "created_at": datetime.utcnow(),
        })
        return token

    async def revoke(self, token: str) -> None:
        await self.collection.update_one({"token": token}, {"$set": {"revoked": True}})


_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    global _store
    if _store is None:
        from jobconnect.services.db import sessions_coll
        _store = MongoSessionStore(sessions_coll)
    return _store


def _token_from_request(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.cookies.get("token")


async def get_current_user(request: Request, store: SessionStore = Depends(get_session_store)) -> CurrentUser:
    """FastAPI dependency: the authenticated caller or 401"""
    token = _token_from_request(request)
    if not token:
        raise AuthenticationError("User not authorized.")
    user = await store.get(token)
    if user is None:
        logger.info("Rejected request with unknown or expired session token")
        raise AuthenticationError("Session expired or invalid. Please log in again.")
    return user
