"""Key-value store interface and its Redis implementation."""

from __future__ import annotations

import functools
import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, ContextManager, Iterator, Mapping, Protocol, TypeVar

import redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

from .config import Settings
from .errors import StoreUnavailable

LOGGER = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])


class KeyValueStore(Protocol):
    """Primitive operations the managers rely on.

    Values are strings; documents are JSON-compatible mappings stored as a
    whole record.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, *keys: str) -> int: ...

    def exists(self, key: str) -> bool: ...

    def hget(self, key: str, field: str) -> str | None: ...

    def hset(self, key: str, mapping: Mapping[str, Any]) -> None: ...

    def hgetall(self, key: str) -> dict[str, str]: ...

    def hdel(self, key: str, *fields: str) -> int: ...

    def sadd(self, key: str, *members: str) -> int: ...

    def srem(self, key: str, *members: str) -> int: ...

    def smembers(self, key: str) -> set[str]: ...

    def sismember(self, key: str, member: str) -> bool: ...

    def lpush(self, key: str, *values: str) -> int: ...

    def lrange(self, key: str, start: int, end: int) -> list[str]: ...

    def llen(self, key: str) -> int: ...

    def keys(self, pattern: str) -> list[str]: ...

    def get_document(self, key: str) -> dict[str, Any] | None: ...

    def set_document(self, key: str, document: Mapping[str, Any]) -> None: ...

    def lock(self, name: str, timeout: float) -> ContextManager[None]: ...


def _translate_errors(func: _F) -> _F:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise StoreUnavailable(f"Key-value store unavailable: {exc}") from exc

    return wrapper  # type: ignore[return-value]


class RedisStore:
    """:class:`KeyValueStore` backed by a ``redis.Redis`` client.

    Documents use RedisJSON when the server provides it. Without the module,
    documents are stored as serialized JSON strings; the mode is detected on
    first use and callers never see the difference.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._json_supported: bool | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> RedisStore:
        """Create a store whose connection retries with bounded backoff."""

        retry = Retry(
            ExponentialBackoff(
                cap=settings.store_backoff_cap, base=settings.store_backoff_base
            ),
            settings.store_max_retries,
        )
        client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.store_connect_timeout,
            retry=retry,
            retry_on_error=[RedisConnectionError, RedisTimeoutError],
        )
        return cls(client)

    @property
    def client(self) -> redis.Redis:
        return self._client

    @_translate_errors
    def get(self, key: str) -> str | None:
        return self._client.get(key)

    @_translate_errors
    def set(self, key: str, value: str) -> None:
        self._client.set(key, value)

    @_translate_errors
    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(self._client.delete(*keys))

    @_translate_errors
    def exists(self, key: str) -> bool:
        return bool(self._client.exists(key))

    @_translate_errors
    def hget(self, key: str, field: str) -> str | None:
        return self._client.hget(key, field)

    @_translate_errors
    def hset(self, key: str, mapping: Mapping[str, Any]) -> None:
        self._client.hset(key, mapping={k: str(v) for k, v in mapping.items()})

    @_translate_errors
    def hgetall(self, key: str) -> dict[str, str]:
        return dict(self._client.hgetall(key))

    @_translate_errors
    def hdel(self, key: str, *fields: str) -> int:
        if not fields:
            return 0
        return int(self._client.hdel(key, *fields))

    @_translate_errors
    def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return int(self._client.sadd(key, *members))

    @_translate_errors
    def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return int(self._client.srem(key, *members))

    @_translate_errors
    def smembers(self, key: str) -> set[str]:
        return set(self._client.smembers(key))

    @_translate_errors
    def sismember(self, key: str, member: str) -> bool:
        return bool(self._client.sismember(key, member))

    @_translate_errors
    def lpush(self, key: str, *values: str) -> int:
        if not values:
            return self.llen(key)
        return int(self._client.lpush(key, *values))

    @_translate_errors
    def lrange(self, key: str, start: int, end: int) -> list[str]:
        return list(self._client.lrange(key, start, end))

    @_translate_errors
    def llen(self, key: str) -> int:
        return int(self._client.llen(key))

    @_translate_errors
    def keys(self, pattern: str) -> list[str]:
        return list(self._client.scan_iter(match=pattern))

    @_translate_errors
    def get_document(self, key: str) -> dict[str, Any] | None:
        if self._uses_json_module():
            try:
                return self._client.json().get(key)
            except ResponseError:
                self._json_supported = False
                LOGGER.warning("RedisJSON unavailable; storing documents as strings")
        raw = self._client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    @_translate_errors
    def set_document(self, key: str, document: Mapping[str, Any]) -> None:
        if self._uses_json_module():
            try:
                self._client.json().set(key, "$", dict(document))
                return
            except ResponseError:
                self._json_supported = False
                LOGGER.warning("RedisJSON unavailable; storing documents as strings")
        self._client.set(key, json.dumps(document))

    @contextmanager
    def lock(self, name: str, timeout: float) -> Iterator[None]:
        """Hold a Redis lease lock named ``name`` for at most ``timeout`` seconds."""

        lease = self._client.lock(name, timeout=timeout, blocking_timeout=timeout)
        try:
            acquired = lease.acquire()
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise StoreUnavailable(f"Key-value store unavailable: {exc}") from exc
        if not acquired:
            raise StoreUnavailable(f"Timed out waiting for lock {name}")
        LOGGER.debug("Acquired lock %s", name)
        try:
            yield
        finally:
            try:
                lease.release()
            except LockError:
                LOGGER.warning("Lock %s expired before it was released", name)
            except (RedisConnectionError, RedisTimeoutError):
                LOGGER.exception("Could not release lock %s; it expires with its lease", name)

    def _uses_json_module(self) -> bool:
        if self._json_supported is None:
            try:
                modules = self._client.module_list()
            except ResponseError:
                modules = []
            names = {
                str(module.get("name", "")).lower()
                for module in modules
                if isinstance(module, Mapping)
            }
            self._json_supported = "rejson" in names or "json" in names
        return self._json_supported


__all__ = ["KeyValueStore", "RedisStore"]
