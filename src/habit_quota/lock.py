"""Per-habit admission locks."""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LockGuard:
    """Lock guard returned after acquiring a lock."""

    key: str
    token: str


class LockError(Exception):
    """Lock could not be acquired or released."""


class AdmissionLock(ABC):
    """Mutual exclusion keyed by habit id."""

    @abstractmethod
    async def acquire(self, key: str, timeout: float) -> LockGuard:
        """Wait up to `timeout` seconds for `key`. Raises LockError on timeout."""
        ...

    @abstractmethod
    async def release(self, guard: LockGuard) -> None: ...

    @abstractmethod
    async def is_locked(self, key: str) -> bool: ...


class _KeyLock:
    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.token: str | None = None
        self.users = 0


class InMemoryAdmissionLock(AdmissionLock):
    """Process-local admission lock built on asyncio.Lock."""

    def __init__(self) -> None:
        self._keys: dict[str, _KeyLock] = {}

    async def acquire(self, key: str, timeout: float) -> LockGuard:
        slot = self._keys.get(key)
        if slot is None:
            slot = self._keys[key] = _KeyLock()
        slot.users += 1
        try:
            await asyncio.wait_for(slot.lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            self._forget(key, slot)
            raise LockError(f"Timed out waiting for lock: {key}") from None
        except BaseException:
            self._forget(key, slot)
            raise
        slot.token = str(uuid.uuid4())
        return LockGuard(key=key, token=slot.token)

    async def release(self, guard: LockGuard) -> None:
        slot = self._keys.get(guard.key)
        if slot is None or not slot.lock.locked():
            raise LockError(f"Lock not found: {guard.key}")
        if slot.token != guard.token:
            raise LockError("Token mismatch")
        slot.token = None
        slot.lock.release()
        self._forget(guard.key, slot)

    async def is_locked(self, key: str) -> bool:
        slot = self._keys.get(key)
        return slot is not None and slot.lock.locked()

    def _forget(self, key: str, slot: _KeyLock) -> None:
        slot.users -= 1
        if slot.users == 0 and self._keys.get(key) is slot:
            del self._keys[key]
