"""
Tests for folding identity groups into the most senior primary
"""

import pytest

from services.group_merger import GroupMerger


@pytest.fixture
def merger():
    return GroupMerger()


async def test_newer_primary_is_demoted_with_its_secondaries(merger, store, add_contact):
    older = await add_contact("a@x.com", "1", minutes=0)
    newer = await add_contact("b@x.com", "2", minutes=5)
    child = await add_contact("c@x.com", "2", linked_id=newer.id, minutes=6)

    survivor = await merger.merge(store, [await store.find_by_id(newer.id), await store.find_by_id(older.id)])

    assert survivor.id == older.id
    demoted = await store.find_by_id(newer.id)
    assert demoted.is_secondary()
    assert demoted.linked_id == older.id
    relinked = await store.find_by_id(child.id)
    assert relinked.linked_id == older.id
    assert [c.id for c in await store.find_secondaries_of(older.id)] == [newer.id, child.id]
    assert await store.find_secondaries_of(newer.id) == []


async def test_seniority_uses_created_at_not_id(merger, store, add_contact):
    inserted_first = await add_contact("late@x.com", "1", minutes=30)
    inserted_second = await add_contact("early@x.com", "2", minutes=0)

    survivor = await merger.merge(
        store, [await store.find_by_id(inserted_first.id), await store.find_by_id(inserted_second.id)]
    )

    assert survivor.id == inserted_second.id
    assert (await store.find_by_id(inserted_first.id)).linked_id == inserted_second.id


async def test_all_primaries_fold_into_one_survivor(merger, store, add_contact):
    first = await add_contact("a@x.com", "1", minutes=0)
    second = await add_contact("b@x.com", "2", minutes=1)
    third = await add_contact("c@x.com", "3", minutes=2)
    third_child = await add_contact("d@x.com", "3", linked_id=third.id, minutes=3)

    primaries = [await store.find_by_id(c.id) for c in (third, first, second)]
    survivor = await merger.merge(store, primaries)

    assert survivor.id == first.id
    group = await store.find_secondaries_of(first.id)
    assert [c.id for c in group] == [second.id, third.id, third_child.id]
    assert all(c.linked_id == first.id for c in group)


async def test_creation_ties_break_on_lowest_id(merger, store, add_contact):
    lower = await add_contact("a@x.com", "1", minutes=0)
    higher = await add_contact("b@x.com", "2", minutes=0)

    survivor = await merger.merge(store, [await store.find_by_id(higher.id), await store.find_by_id(lower.id)])

    assert survivor.id == lower.id


async def test_single_primary_is_left_untouched(merger, store, add_contact):
    only = await add_contact("a@x.com", "1")

    survivor = await merger.merge(store, [await store.find_by_id(only.id)])

    assert survivor.id == only.id
    assert survivor.is_primary()


async def test_merge_requires_a_primary(merger, store):
    with pytest.raises(ValueError):
        await merger.merge(store, [])


async def test_stale_chain_below_loser_is_flattened(merger, store, add_contact):
    older = await add_contact("a", "1", minutes=0)
    newer = await add_contact("b", "2", minutes=1)
    middle = await add_contact("m", "2", linked_id=newer.id, minutes=2)
    leaf = await add_contact("leaf", "9", linked_id=middle.id, minutes=3)

    await merger.merge(store, [await store.find_by_id(older.id), await store.find_by_id(newer.id)])

    for contact_id in (newer.id, middle.id, leaf.id):
        assert (await store.find_by_id(contact_id)).linked_id == older.id
    assert [c.id for c in await store.find_secondaries_of(older.id)] == [newer.id, middle.id, leaf.id]
