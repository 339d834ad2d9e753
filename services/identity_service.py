"""
Identity Service - Core business logic for identity reconciliation
Matches a submission against stored contacts, resolves and merges identity
groups, records new information and returns the consolidated identity
"""

import logging
from typing import Optional, List, Tuple, Union

from config import settings
from database import db_manager as default_db_manager
from models.contact import Contact, EMAIL_MAX_LENGTH, PHONE_NUMBER_MAX_LENGTH
from schemas.identify import IdentifyRequest, IdentifyResponse, ContactResponse, canonicalize_identifier
from services.contact_store import ContactStore
from services.errors import CorruptGroupError, StoreTimeoutError, ValidationError
from services.group_merger import GroupMerger
from services.locking import IdentityLockManager, group_lock_key, identifier_lock_keys
from services.primary_resolver import PrimaryResolver
from services.response_builder import ResponseBuilder

logger = logging.getLogger(__name__)


class IdentityService:
    """
    Core service for identity reconciliation logic
    Handles all business rules for linking customer contacts
    """

    def __init__(
        self,
        db_manager=None,
        lock_manager: Optional[IdentityLockManager] = None,
        store_timeout: Optional[float] = None,
        max_lock_attempts: Optional[int] = None
    ):
        self.db_manager = db_manager or default_db_manager
        self.lock_manager = lock_manager or IdentityLockManager()
        self.store_timeout = settings.STORE_TIMEOUT_SECONDS if store_timeout is None else store_timeout
        self.max_lock_attempts = settings.LOCK_MAX_ATTEMPTS if max_lock_attempts is None else max_lock_attempts
        if self.max_lock_attempts < 1:
            raise ValueError(f"max_lock_attempts must be at least 1, got {self.max_lock_attempts}")
        self.primary_resolver = PrimaryResolver()
        self.group_merger = GroupMerger()
        self.response_builder = ResponseBuilder()

    async def identify_contact(self, request: IdentifyRequest) -> IdentifyResponse:
        """Reconcile an /identify request and wrap the result for the API"""
        contact = await self.identify(request.email, request.phoneNumber)
        return IdentifyResponse(contact=contact)

    async def identify(
        self,
        email: Optional[str] = None,
        phone_number: Union[str, int, None] = None,
        timeout: Optional[float] = None
    ) -> ContactResponse:
        """
        Main orchestration method for identity reconciliation

        Algorithm:
        1. Find existing contacts matching email or phone
        2. If no matches -> create new primary contact
        3. Resolve every match to its group primary
        4. Several primaries -> merge them under the oldest one
        5. One primary -> add a secondary if the submission brings new values
        6. Return consolidated contact information

        Steps run while holding the locks of the submission's identifiers and
        of every group it touches. When a touched group was not locked yet the
        attempt is abandoned and retried with the larger lock set.
        """
        email = canonicalize_identifier(email)
        phone_number = canonicalize_identifier(phone_number)
        if not email and not phone_number:
            raise ValidationError("at least one identifier required")
        if email and len(email) > EMAIL_MAX_LENGTH:
            raise ValidationError(f"email must be at most {EMAIL_MAX_LENGTH} characters")
        if phone_number and len(phone_number) > PHONE_NUMBER_MAX_LENGTH:
            raise ValidationError(f"phoneNumber must be at most {PHONE_NUMBER_MAX_LENGTH} characters")

        timeout = self.store_timeout if timeout is None else timeout
        lock_keys = identifier_lock_keys(email, phone_number)

        for attempt in range(1, self.max_lock_attempts + 1):
            async with self.lock_manager.hold(lock_keys, timeout=timeout):
                async with self.db_manager.get_session() as session:
                    store = ContactStore(session, timeout=timeout, dialect_name=self.db_manager.dialect_name)
                    await store.acquire_locks(lock_keys)
                    contact, missing_keys = await self._reconcile(store, email, phone_number, lock_keys)

            if contact is not None:
                return contact

            # The first pass cannot know the touched groups up front
            log = logger.debug if attempt == 1 else logger.warning
            log(f"Attempt {attempt} touched {len(missing_keys)} unlocked identity groups, retrying")
            lock_keys = lock_keys | missing_keys

        raise StoreTimeoutError(
            f"Could not lock a stable set of identity groups after {self.max_lock_attempts} attempts"
        )

    async def _reconcile(
        self,
        store: ContactStore,
        email: Optional[str],
        phone_number: Optional[str],
        held_keys: frozenset
    ) -> Tuple[Optional[ContactResponse], frozenset]:
        """
        One locked pass of the algorithm

        Returns the consolidated contact, or (None, missing_keys) without
        writing anything when a touched group is not covered by held_keys.
        """
        matches = await store.find_exact_matches(email, phone_number)

        if not matches:
            new_contact = await store.create_primary(email, phone_number)
            return await self.response_builder.build_view(store, new_contact.id), frozenset()

        primaries = await self._resolve_primaries(store, matches)

        missing_keys = frozenset(group_lock_key(primary.id) for primary in primaries) - held_keys
        if missing_keys:
            return None, missing_keys

        if len(primaries) > 1:
            # The submission bridges separate identities; merging is its whole effect
            survivor = await self.group_merger.merge(store, primaries)
            return await self.response_builder.build_view(store, survivor.id), frozenset()

        primary = primaries[0]
        if await self._has_new_information(store, primary, email, phone_number):
            await store.create_secondary(email, phone_number, primary.id)

        return await self.response_builder.build_view(store, primary.id), frozenset()

    async def _resolve_primaries(self, store: ContactStore, matches: List[Contact]) -> List[Contact]:
        """Distinct primaries of the matched contacts, in first-seen order"""
        primaries = {}
        for contact in matches:
            try:
                primary = await self.primary_resolver.resolve_primary(store, contact)
            except CorruptGroupError as e:
                logger.error(f"Corrupt identity group while resolving contact {contact.id}: {e}")
                raise
            primaries.setdefault(primary.id, primary)
        return list(primaries.values())

    async def _has_new_information(
        self,
        store: ContactStore,
        primary: Contact,
        email: Optional[str],
        phone_number: Optional[str]
    ) -> bool:
        """
        Check if the request contains a value not present anywhere in the group
        """
        group = await store.find_group(primary.id)
        known_emails = {contact.email for contact in group if contact.email}
        known_phones = {contact.phone_number for contact in group if contact.phone_number}

        has_new_email = bool(email) and email not in known_emails
        has_new_phone = bool(phone_number) and phone_number not in known_phones
        return has_new_email or has_new_phone


# Global service instance
identity_service = IdentityService()
