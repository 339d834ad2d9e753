"""
Contact Store - persistence operations used by the reconciliation engine
Wraps one AsyncSession (one transaction); every database round trip is
bounded by the caller's timeout and reported as StoreTimeoutError on expiry.
"""

import asyncio
import logging
from typing import List, Optional, Iterable

from sqlalchemy import select, update, or_, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utcnow
from models.contact import Contact, LinkPrecedence
from services.errors import ContactNotFoundError, StoreTimeoutError
from services.locking import advisory_lock_ids

logger = logging.getLogger(__name__)


class ContactStore:
    """
    Exact-match lookups and linkage updates over the contacts table

    Result sequences are ordered by (created_at, id) so every downstream
    tie-break is deterministic.
    """

    def __init__(self, session: AsyncSession, timeout: Optional[float] = None,
                 dialect_name: Optional[str] = None):
        self.session = session
        self.timeout = timeout
        self.dialect_name = dialect_name

    async def _bounded(self, awaitable, operation: str):
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except (asyncio.TimeoutError, sa_exc.TimeoutError) as e:
            logger.warning(f"Contact store operation '{operation}' timed out after {self.timeout}s")
            raise StoreTimeoutError(f"Contact store operation '{operation}' timed out") from e

    async def _scalars(self, query, operation: str) -> List[Contact]:
        result = await self._bounded(self.session.execute(query), operation)
        return list(result.scalars().all())

    async def acquire_locks(self, keys: Iterable[str]):
        """
        Take transaction-scoped advisory locks for keys (PostgreSQL only)

        Released by PostgreSQL when the surrounding transaction ends.
        """
        if self.dialect_name != "postgresql":
            return
        for lock_id in advisory_lock_ids(keys):
            await self._bounded(
                self.session.execute(text("SELECT pg_advisory_xact_lock(:lock_id)"), {"lock_id": lock_id}),
                "acquire_locks"
            )

    async def find_exact_matches(self, email: Optional[str], phone_number: Optional[str]) -> List[Contact]:
        """Contacts whose email equals email OR whose phone equals phone_number"""
        conditions = []
        if email:
            conditions.append(Contact.email == email)
        if phone_number:
            conditions.append(Contact.phone_number == phone_number)
        if not conditions:
            return []

        query = select(Contact).where(or_(*conditions)).order_by(Contact.created_at, Contact.id)
        return await self._scalars(query, "find_exact_matches")

    async def find_by_id(self, contact_id: int) -> Optional[Contact]:
        return await self._bounded(self.session.get(Contact, contact_id), "find_by_id")

    async def find_secondaries_of(self, primary_id: int) -> List[Contact]:
        query = (
            select(Contact)
            .where(Contact.linked_id == primary_id)
            .order_by(Contact.created_at, Contact.id)
        )
        return await self._scalars(query, "find_secondaries_of")

    async def find_group(self, primary_id: int) -> List[Contact]:
        """The primary and its secondaries; callers must not assume the primary comes first"""
        query = (
            select(Contact)
            .where(or_(Contact.id == primary_id, Contact.linked_id == primary_id))
            .order_by(Contact.created_at, Contact.id)
        )
        return await self._scalars(query, "find_group")

    async def _insert(self, email: Optional[str], phone_number: Optional[str],
                      linked_id: Optional[int], precedence: LinkPrecedence) -> Contact:
        now = utcnow()
        contact = Contact(
            email=email,
            phone_number=phone_number,
            linked_id=linked_id,
            link_precedence=precedence.value,
            created_at=now,
            updated_at=now
        )
        self.session.add(contact)
        await self._bounded(self.session.flush(), "insert")  # Get the ID
        return contact

    async def create_primary(self, email: Optional[str], phone_number: Optional[str]) -> Contact:
        contact = await self._insert(email, phone_number, None, LinkPrecedence.PRIMARY)
        logger.info(f"Created primary contact {contact.id}")
        return contact

    async def create_secondary(self, email: Optional[str], phone_number: Optional[str],
                               primary_id: int) -> Contact:
        contact = await self._insert(email, phone_number, primary_id, LinkPrecedence.SECONDARY)
        logger.info(f"Created secondary contact {contact.id} linked to primary {primary_id}")
        return contact

    async def demote_to_secondary(self, contact_id: int, new_primary_id: int) -> Contact:
        contact = await self.find_by_id(contact_id)
        if contact is None:
            raise ContactNotFoundError(contact_id)

        contact.link_precedence = LinkPrecedence.SECONDARY.value
        contact.linked_id = new_primary_id
        contact.updated_at = utcnow()
        await self._bounded(self.session.flush(), "demote_to_secondary")
        return contact

    async def relink_children(self, old_primary_id: int, new_primary_id: int) -> int:
        """Re-point every contact linked to old_primary_id; returns how many moved"""
        statement = (
            update(Contact)
            .where(Contact.linked_id == old_primary_id)
            .values(linked_id=new_primary_id, updated_at=utcnow())
            .execution_options(synchronize_session="evaluate")
        )
        result = await self._bounded(self.session.execute(statement), "relink_children")
        return result.rowcount
