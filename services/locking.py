"""
Lock keys and in-process locks that serialize overlapping submissions

A submission holds one lock per identifier it carries (email:..., phone:...)
and one per identity group it touches (group:<primary id>). Every write the
engine performs happens while the writer holds the keys that cover it, so
two submissions that could observe each other's writes never interleave.
"""

import asyncio
import hashlib
import logging
import weakref
from contextlib import asynccontextmanager
from typing import Iterable, List, Optional

from services.errors import StoreTimeoutError

logger = logging.getLogger(__name__)


def email_lock_key(email: str) -> str:
    return f"email:{email}"


def phone_lock_key(phone_number: str) -> str:
    return f"phone:{phone_number}"


def group_lock_key(primary_id: int) -> str:
    return f"group:{primary_id}"


def identifier_lock_keys(email: Optional[str], phone_number: Optional[str]) -> frozenset:
    keys = set()
    if email:
        keys.add(email_lock_key(email))
    if phone_number:
        keys.add(phone_lock_key(phone_number))
    return frozenset(keys)


def advisory_lock_id(key: str) -> int:
    """Stable signed 64-bit id for a lock key (PostgreSQL advisory lock space)"""
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


def advisory_lock_ids(keys: Iterable[str]) -> List[int]:
    """Deduplicated advisory ids in the order every session must take them"""
    return sorted({advisory_lock_id(key) for key in keys})


class IdentityLockManager:
    """
    Keyed asyncio locks for a single process

    Locks are created on demand and dropped once no coroutine references
    them. Keys are always taken in sorted order so holders never deadlock.
    """

    def __init__(self):
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, keys: Iterable[str], timeout: Optional[float] = None):
        """
        Hold every key for the duration of the block

        Raises StoreTimeoutError if any lock cannot be taken within timeout
        seconds; locks already taken are released first.
        """
        ordered = sorted(set(keys))
        locks = [self._lock_for(key) for key in ordered]
        acquired = []
        try:
            for key, lock in zip(ordered, locks):
                try:
                    await asyncio.wait_for(lock.acquire(), timeout)
                except asyncio.TimeoutError as e:
                    logger.warning(f"Timed out after {timeout}s waiting for lock {key}")
                    raise StoreTimeoutError(f"Timed out waiting for identity lock {key}") from e
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()
