"""
Primary Resolver - maps any contact to the primary of its identity group
"""

import logging

from models.contact import Contact
from services.contact_store import ContactStore
from services.errors import CorruptGroupError

logger = logging.getLogger(__name__)


class PrimaryResolver:
    """
    Follows linked_id references until a primary contact is reached

    Stored groups are flat, so a secondary normally resolves in one hop.
    Longer chains are still followed; cycles and references to missing
    contacts raise CorruptGroupError instead of being repaired.
    """

    async def resolve_primary(self, store: ContactStore, contact: Contact) -> Contact:
        current = contact
        visited = {current.id}

        while not current.is_primary():
            if current.linked_id is None:
                raise CorruptGroupError(
                    f"Secondary contact {current.id} has no linked contact",
                    contact_id=current.id
                )
            if current.linked_id in visited:
                raise CorruptGroupError(
                    f"Cyclic link detected at contact {current.id} -> {current.linked_id}",
                    contact_id=current.id
                )

            parent = await store.find_by_id(current.linked_id)
            if parent is None:
                raise CorruptGroupError(
                    f"Contact {current.id} links to missing contact {current.linked_id}",
                    contact_id=current.id
                )
            visited.add(parent.id)
            current = parent

        if len(visited) > 2:
            logger.warning(f"Contact {contact.id} resolved through a stale chain of {len(visited) - 1} links")
        return current

