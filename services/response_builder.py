"""
Response Builder - consolidated view of one identity group
"""

from services.contact_store import ContactStore
from services.errors import ContactNotFoundError, CorruptGroupError
from schemas.identify import ContactResponse


class ResponseBuilder:
    """Builds the deduplicated, primary-first projection of a group"""

    async def build_view(self, store: ContactStore, primary_id: int) -> ContactResponse:
        """
        Primary values come first, then each secondary's values in creation
        order, skipping any value already listed. The same stored state
        always yields the same lists.
        """
        primary = await store.find_by_id(primary_id)
        if primary is None:
            raise ContactNotFoundError(primary_id)
        if not primary.is_primary():
            raise CorruptGroupError(
                f"Contact {primary_id} is not a primary contact",
                contact_id=primary_id
            )

        secondaries = await store.find_secondaries_of(primary_id)

        emails, phone_numbers = [], []
        seen_emails, seen_phones = set(), set()
        for contact in [primary, *secondaries]:
            if contact.email and contact.email not in seen_emails:
                seen_emails.add(contact.email)
                emails.append(contact.email)
            if contact.phone_number and contact.phone_number not in seen_phones:
                seen_phones.add(contact.phone_number)
                phone_numbers.append(contact.phone_number)

        return ContactResponse(
            primaryContactId=primary.id,
            emails=emails,
            phoneNumbers=phone_numbers,
            secondaryContactIds=[contact.id for contact in secondaries]
        )

