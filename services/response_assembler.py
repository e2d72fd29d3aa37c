"""
Builds the consolidated contact view of one identity cluster
"""

from typing import Iterable, List, Optional, Sequence

from models.contact import Contact
from schemas.identify import ContactResponse


def _unique_in_order(values: Iterable[Optional[str]]) -> List[str]:
    seen = set()
    ordered = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def assemble_contact_response(primary: Contact, secondaries: Sequence[Contact]) -> ContactResponse:
    """
    Consolidate a primary and its secondaries into the public response shape

    The primary's own email and phone number come first, followed by the
    secondaries' values in cluster order. Duplicates keep their first position.
    """
    cluster = [primary, *secondaries]

    return ContactResponse(
        primaryContatctId=primary.id,
        emails=_unique_in_order(contact.email for contact in cluster),
        phoneNumbers=_unique_in_order(contact.phone_number for contact in cluster),
        secondaryContactIds=[contact.id for contact in secondaries]
    )
