"""Signed session tokens and a Redis-backed session store with in-memory fallback."""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

import redis.asyncio as redis
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from redis.exceptions import RedisError

from config import config

logger = logging.getLogger(__name__)


class SessionSigner:
    """Sign and verify session ids so clients cannot guess another table's id."""

    def __init__(self, secret_key: str | None = None) -> None:
        self._serializer = URLSafeTimedSerializer(
            secret_key or config.security.secret_key,
            salt="virtual-deck-session",
        )

    def sign(self, session_id: str) -> str:
        return self._serializer.dumps(session_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify a token and return the session id it carries.

        Returns:
            The session id, or None if the token is forged or older than max_age
        """
        try:
            return self._serializer.loads(token, max_age=max_age or config.session_ttl)
        except (BadSignature, SignatureExpired):
            return None


_session_signer: SessionSigner | None = None


def get_session_signer() -> SessionSigner:
    global _session_signer
    if _session_signer is None:
        _session_signer = SessionSigner()
    return _session_signer


class SessionStore(ABC):
    """Key-value storage for serialized tables, keyed by raw session id."""

    @abstractmethod
    async def load(self, session_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def save(self, session_id: str, data: dict[str, Any], ttl: int | None = None) -> None: ...

    @abstractmethod
    async def delete(self, session_id: str) -> None: ...

    async def exists(self, session_id: str) -> bool:
        return await self.load(session_id) is not None


class InMemorySessionStore(SessionStore):
    """Process-local store, used when Redis is disabled or unreachable."""

    def __init__(self) -> None:
        self._sessions: dict[str, tuple[dict[str, Any], datetime]] = {}

    async def load(self, session_id: str) -> dict[str, Any] | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        data, expiry = entry
        if expiry < datetime.now():
            del self._sessions[session_id]
            return None
        return data

    async def save(self, session_id: str, data: dict[str, Any], ttl: int | None = None) -> None:
        expiry = datetime.now() + timedelta(seconds=ttl or config.session_ttl)
        self._sessions[session_id] = (data, expiry)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def purge_expired(self) -> int:
        """Drop expired sessions and return how many were removed."""
        now = datetime.now()
        expired = [sid for sid, (_, expiry) in self._sessions.items() if expiry < now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)


class RedisSessionStore(SessionStore):
    """Store tables as JSON strings with a Redis TTL."""

    def __init__(self, client: "redis.Redis", prefix: str | None = None) -> None:
        self._redis = client
        self._prefix = prefix or config.redis.key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    async def load(self, session_id: str) -> dict[str, Any] | None:
        raw = await self._redis.get(self._key(session_id))
        return json.loads(raw) if raw is not None else None

    async def save(self, session_id: str, data: dict[str, Any], ttl: int | None = None) -> None:
        await self._redis.setex(self._key(session_id), ttl or config.session_ttl, json.dumps(data))

    async def delete(self, session_id: str) -> None:
        await self._redis.delete(self._key(session_id))

    async def exists(self, session_id: str) -> bool:
        return await self._redis.exists(self._key(session_id)) > 0


_session_store: SessionStore | None = None


async def get_session_store() -> SessionStore:
    """Connect to Redis once; fall back to memory if it cannot be reached."""
    global _session_store
    if _session_store is not None:
        return _session_store

    if config.redis.enabled:
        client = redis.from_url(config.redis.url)
        try:
            await client.ping()
        except (RedisError, OSError) as exc:
            logger.warning("Redis unavailable (%s), keeping sessions in memory", exc)
        else:
            logger.info("Using Redis session store at %s:%d", config.redis.host, config.redis.port)
            _session_store = RedisSessionStore(client)
            return _session_store

    _session_store = InMemorySessionStore()
    return _session_store


def set_session_store(store: SessionStore | None) -> None:
    """Replace the global store (None forces a reconnect on next use)."""
    global _session_store
    _session_store = store


def new_session_token() -> tuple[str, str]:
    """
    Create a fresh session.

    Returns:
        (raw session id, signed token handed to the client)
    """
    session_id = str(uuid4())
    return session_id, get_session_signer().sign(session_id)


def extract_session_id(token: str) -> str | None:
    """Return the raw session id from a signed token, or None if it does not verify."""
    return get_session_signer().unsign(token)
