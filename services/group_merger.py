"""
Group Merger - folds several identity groups into the most senior one
"""

import logging
from typing import List

from models.contact import Contact
from services.contact_store import ContactStore

logger = logging.getLogger(__name__)


class GroupMerger:
    """
    Merges identity groups bridged by a single submission

    The primary with the earliest created_at (then lowest id) survives.
    Every other primary becomes a secondary of the survivor and all of its
    descendants, including ones left on stale multi-hop chains, are
    re-pointed at the survivor, so groups stay one level deep.
    """

    async def merge(self, store: ContactStore, primaries: List[Contact]) -> Contact:
        if not primaries:
            raise ValueError("merge requires at least one primary contact")

        ordered = sorted(primaries, key=lambda contact: contact.seniority_key())
        survivor = ordered[0]

        for loser in ordered[1:]:
            moved = await self._relink_descendants(store, loser.id, survivor.id)
            await store.demote_to_secondary(loser.id, survivor.id)
            logger.info(
                f"Merged group of primary {loser.id} into primary {survivor.id} "
                f"({moved} secondaries re-linked)"
            )

        return survivor

    async def _relink_descendants(self, store: ContactStore, root_id: int, survivor_id: int) -> int:
        """Re-point every contact reachable below root_id at survivor_id"""
        moved = 0
        visited = {root_id, survivor_id}
        pending = [root_id]

        while pending:
            parent_id = pending.pop()
            children = await store.find_secondaries_of(parent_id)
            if not children:
                continue
            if parent_id != root_id:
                logger.warning(f"Flattening stale chain below contact {parent_id}")
            pending.extend(child.id for child in children if child.id not in visited)
            visited.update(child.id for child in children)
            moved += await store.relink_children(parent_id, survivor_id)

        return moved
