"""
Fixed-window rate limiting backed by a shared, expiring counter store.

Counters are kept in the storage named by ``RATE_LIMIT_STORAGE_URI``
(``memory://`` for a single process, ``redis://...`` when several instances
serve traffic). Each counter expires with its window, so nothing needs
periodic cleanup.

Usage in FastAPI routes:
    @router.post("/things", dependencies=[Depends(rate_limit("5/minute", "things"))])
    async def create_thing(...):
        ...
"""
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from limits import RateLimitItem, parse
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter

from groupguard.core import config
from groupguard.core.errors import AppError, ErrorKind
from groupguard.features.users.auth import verify_jwt_token
from groupguard.utils import get_logger


log = get_logger(__name__)


class RateLimiter:
    """Counts hits per (scope, key) in fixed windows."""

    def __init__(self, storage: Storage):
        self.storage = storage
        self._strategy = FixedWindowRateLimiter(storage)

    @classmethod
    def from_uri(cls, uri: str) -> "RateLimiter":
        return cls(storage_from_string(uri))

    def hit(self, limit: str | RateLimitItem, scope: str, key: str) -> bool:
        """
        Register one hit and report whether it is within the limit.

        Args:
            limit: Limit string such as "5/minute" or a parsed item
            scope: Name of the protected operation
            key: Caller identity (user id, IP, ...)

        Returns:
            True if the hit is allowed, False once the window is exhausted
        """
        item = parse(limit) if isinstance(limit, str) else limit
        return self._strategy.hit(item, scope, key)

    def remaining(self, limit: str | RateLimitItem, scope: str, key: str) -> int:
        item = parse(limit) if isinstance(limit, str) else limit
        return self._strategy.get_window_stats(item, scope, key).remaining

    def reset(self) -> None:
        self.storage.reset()


@lru_cache
def get_rate_limiter() -> RateLimiter:
    """Dependency returning the process-wide limiter bound to the configured store."""
    return RateLimiter.from_uri(config.RATE_LIMIT_STORAGE_URI)


def client_key(request: Request) -> str:
    """
    Identify a caller by the user id in a valid bearer token, falling back to
    the client address.

    Unverified headers never become keys, so varying the header does not give
    an anonymous caller a fresh window.
    """
    auth = request.headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            return f"user:{verify_jwt_token(token)['sub']}"
        except AppError:
            pass
    return request.client.host if request.client else "anonymous"


def rate_limit(limit: str, scope: str):
    """
    FastAPI dependency factory enforcing ``limit`` for ``scope`` per caller.

    Raises:
        AppError: RATE_LIMITED once the caller exhausts the window
    """
    item = parse(limit)

    async def dependency(
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        key = client_key(request)
        if not limiter.hit(item, scope, key):
            log.info(f"Rate limit exceeded: scope={scope} limit={limit}")
            raise AppError(ErrorKind.RATE_LIMITED, f"Rate limit exceeded: {limit}")

    return dependency
