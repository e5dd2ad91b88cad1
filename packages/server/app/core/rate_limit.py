"""
Per-user, per-action rate limiting.

A RateLimitChecker is bound to one user and answers three questions for a
named action (e.g. "listing_creation"):

- limit_by_action(action): has the user already reached the limit?
- track_limit_by_action(action): count one more attempt.
- exceeded(action, count): did that attempt go past the limit?

Handlers consult limit_by_action before mutating anything, then call
track_limit_by_action and pass the returned count to exceeded(). The count
comes from an atomic increment, so two concurrent requests that both passed
the first check still see distinct counts and only one of them fits under
the limit. The Redis checker is shared across workers; the in-memory
checker is per-process.
"""

from __future__ import annotations

import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import redis.asyncio as redis
import structlog
from fastapi import Depends

from app.core.auth import get_current_user
from app.core.config import Settings, get_settings
from app.core.redis import get_redis
from app.models.user import User

log = structlog.get_logger()

LISTING_CREATION = "listing_creation"


@dataclass(frozen=True)
class ActionLimit:
    limit: int
    window_seconds: int


def action_limits(settings: Settings) -> dict[str, ActionLimit]:
    """Known rate-limited actions and their budgets."""
    return {
        LISTING_CREATION: ActionLimit(
            limit=settings.rate_limit_listing_creation,
            window_seconds=settings.rate_limit_window_seconds,
        ),
    }


class RateLimitChecker(ABC):
    """Interface for per-user action limiters."""

    def __init__(self, user_id: uuid.UUID, limits: dict[str, ActionLimit]):
        self.user_id = user_id
        self.limits = limits

    def _limit_for(self, action: str) -> ActionLimit:
        try:
            return self.limits[action]
        except KeyError:
            raise ValueError(f"Unknown rate-limited action: {action}")

    def _key(self, action: str) -> str:
        return f"rate_limit:{self.user_id}:{action}"

    def retry_after(self, action: str) -> int:
        return self._limit_for(action).window_seconds

    def exceeded(self, action: str, count: int) -> bool:
        """Return True when a tracked count went past the limit for action."""
        limit = self._limit_for(action)
        if count <= limit.limit:
            return False
        log.warning(
            "rate_limit.exceeded",
            user_id=str(self.user_id),
            action=action,
            count=count,
            limit=limit.limit,
        )
        return True

    @abstractmethod
    async def limit_by_action(self, action: str) -> bool:
        """Return True when the user has reached the limit for action."""
        raise NotImplementedError

    @abstractmethod
    async def track_limit_by_action(self, action: str) -> int:
        """Record one attempt at action. Returns the count in the current window."""
        raise NotImplementedError


class RedisRateLimitChecker(RateLimitChecker):
    """Fixed-window counter stored in Redis (INCR + EXPIRE)."""

    def __init__(
        self,
        user_id: uuid.UUID,
        limits: dict[str, ActionLimit],
        client: redis.Redis,
    ):
        super().__init__(user_id, limits)
        self._client = client

    async def limit_by_action(self, action: str) -> bool:
        limit = self._limit_for(action)
        raw = await self._client.get(self._key(action))
        count = int(raw) if raw else 0
        reached = count >= limit.limit
        if reached:
            log.warning(
                "rate_limit.reached",
                user_id=str(self.user_id),
                action=action,
                count=count,
                limit=limit.limit,
            )
        return reached

    async def track_limit_by_action(self, action: str) -> int:
        limit = self._limit_for(action)
        key = self._key(action)
        count = await self._client.incr(key)
        if count == 1:
            await self._client.expire(key, limit.window_seconds)
        return count


@dataclass
class _WindowState:
    window_start: int
    window_seconds: int
    count: int

    def expired(self, now: float) -> bool:
        return now >= self.window_start + self.window_seconds


class InMemoryRateLimitStore:
    """
    Process-wide fixed-window counters, shared by in-memory checkers.

    Expired windows are dropped on increment, at most once per
    prune_interval seconds, so idle users do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.time, prune_interval: int = 60):
        self._clock = clock
        self._prune_interval = prune_interval
        self._next_prune_at = 0.0
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def _prune(self, now: float) -> None:
        if now < self._next_prune_at:
            return
        self._next_prune_at = now + self._prune_interval
        stale = [key for key, state in self._state_by_key.items() if state.expired(now)]
        for key in stale:
            del self._state_by_key[key]

    def _window_start(self, window_seconds: int) -> int:
        return int(self._clock() // window_seconds) * window_seconds

    def count(self, key: str, window_seconds: int) -> int:
        window_start = self._window_start(window_seconds)
        with self._lock:
            state = self._state_by_key.get(key)
            if state is None or state.window_start != window_start:
                return 0
            return state.count

    def incr(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        window_start = int(now // window_seconds) * window_seconds
        with self._lock:
            self._prune(now)
            state = self._state_by_key.get(key)
            if state is None or state.window_start != window_start:
                state = _WindowState(
                    window_start=window_start, window_seconds=window_seconds, count=0
                )
                self._state_by_key[key] = state
            state.count += 1
            return state.count

    def clear(self) -> None:
        with self._lock:
            self._state_by_key.clear()


class InMemoryRateLimitChecker(RateLimitChecker):
    """Per-process checker for development and single-worker deployments."""

    def __init__(
        self,
        user_id: uuid.UUID,
        limits: dict[str, ActionLimit],
        store: InMemoryRateLimitStore,
    ):
        super().__init__(user_id, limits)
        self._store = store

    async def limit_by_action(self, action: str) -> bool:
        limit = self._limit_for(action)
        count = self._store.count(self._key(action), limit.window_seconds)
        reached = count >= limit.limit
        if reached:
            log.warning(
                "rate_limit.reached",
                user_id=str(self.user_id),
                action=action,
                count=count,
                limit=limit.limit,
            )
        return reached

    async def track_limit_by_action(self, action: str) -> int:
        limit = self._limit_for(action)
        return self._store.incr(self._key(action), limit.window_seconds)


_memory_store = InMemoryRateLimitStore()


async def get_rate_limit_checker(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> RateLimitChecker:
    """FastAPI dependency returning a checker bound to the current user."""
    limits = action_limits(settings)
    if settings.rate_limit_backend == "memory":
        return InMemoryRateLimitChecker(user.id, limits, _memory_store)
    client = await get_redis()
    return RedisRateLimitChecker(user.id, limits, client)
