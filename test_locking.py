"""
Tests for lock keys and the in-process lock manager
"""

import asyncio

import pytest

from services.errors import StoreTimeoutError
from services.locking import (
    IdentityLockManager,
    advisory_lock_id,
    advisory_lock_ids,
    group_lock_key,
    identifier_lock_keys,
)


def test_identifier_lock_keys_skip_absent_values():
    assert identifier_lock_keys("a@x.com", "111") == frozenset({"email:a@x.com", "phone:111"})
    assert identifier_lock_keys(None, "111") == frozenset({"phone:111"})
    assert identifier_lock_keys("a@x.com", None) == frozenset({"email:a@x.com"})


def test_email_and_phone_keys_do_not_collide():
    assert identifier_lock_keys("42", "42") == frozenset({"email:42", "phone:42"})


def test_advisory_ids_are_stable_signed_64_bit():
    lock_id = advisory_lock_id(group_lock_key(7))

    assert lock_id == advisory_lock_id("group:7")
    assert -2 ** 63 <= lock_id < 2 ** 63


def test_advisory_ids_are_sorted_and_deduplicated():
    ids = advisory_lock_ids(["phone:1", "email:a", "phone:1"])

    assert ids == sorted(ids)
    assert len(ids) == 2


async def test_hold_serializes_overlapping_key_sets():
    manager = IdentityLockManager()
    events = []

    async def worker(name, keys):
        async with manager.hold(keys):
            events.append(f"{name}:start")
            await asyncio.sleep(0.01)
            events.append(f"{name}:end")

    await asyncio.gather(
        worker("first", {"email:a", "phone:1"}),
        worker("second", {"phone:1", "group:3"}),
    )

    assert events in (
        ["first:start", "first:end", "second:start", "second:end"],
        ["second:start", "second:end", "first:start", "first:end"],
    )


async def test_hold_times_out_and_releases_partial_locks():
    manager = IdentityLockManager()

    async with manager.hold({"phone:1"}):
        with pytest.raises(StoreTimeoutError):
            async with manager.hold({"email:a", "phone:1"}, timeout=0.05):
                pass

    # "email:a" was taken before the timeout and must have been released
    async with manager.hold({"email:a", "phone:1"}, timeout=0.05):
        pass
