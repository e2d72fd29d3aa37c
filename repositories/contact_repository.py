"""
Contact repository - data access for the contacts table
Keeps SQLAlchemy query construction out of the reconciliation service.
A repository wraps one AsyncSession, so every call made through it belongs
to the same transaction.
"""

from typing import List, Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from exceptions import DataIntegrityError
from models.contact import Contact, PRIMARY


class ContactRepository:
    """
    Store operations used by identity reconciliation
    All reads exclude soft-deleted rows. Writes are flushed immediately so
    later queries in the same transaction see them.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _creation_order():
        return Contact.created_at.asc(), Contact.id.asc()

    async def find_by_email_or_phone(
        self,
        email: Optional[str],
        phone: Optional[str]
    ) -> List[Contact]:
        """
        Find all active contacts whose email or phone number matches
        A None argument does not take part in the match
        """
        conditions = []

        if email:
            conditions.append(Contact.email == email)
        if phone:
            conditions.append(Contact.phone_number == phone)

        if not conditions:
            return []

        query = (
            select(Contact)
            .where(and_(or_(*conditions), Contact.deleted_at.is_(None)))
            .order_by(*self._creation_order())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        email: Optional[str],
        phone_number: Optional[str],
        linked_id: Optional[int] = None,
        link_precedence: str = PRIMARY
    ) -> Contact:
        """
        Insert a new contact and return it with its id assigned
        """
        contact = Contact(
            email=email,
            phone_number=phone_number,
            linked_id=linked_id,
            link_precedence=link_precedence
        )

        self.session.add(contact)
        await self.session.flush()  # Get the ID
        return contact

    async def find_secondaries_of(self, primary_id: int) -> List[Contact]:
        """
        Fetch all active secondaries linked to a primary, oldest first
        """
        query = (
            select(Contact)
            .where(and_(Contact.linked_id == primary_id, Contact.deleted_at.is_(None)))
            .order_by(*self._creation_order())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_link(
        self,
        contact_id: int,
        linked_id: Optional[int],
        link_precedence: str
    ) -> Contact:
        """
        Change the linkage of one active contact, e.g. demote a primary to secondary
        """
        contact = await self.find_by_id(contact_id)
        if contact is None:
            raise DataIntegrityError(f"Contact {contact_id} does not exist")

        contact.linked_id = linked_id
        contact.link_precedence = link_precedence
        await self.session.flush()
        return contact

    async def relink_all(self, from_primary_id: int, to_primary_id: int) -> int:
        """
        Point every active secondary of one primary at another primary
        Returns the number of re-linked contacts
        """
        statement = (
            update(Contact)
            .where(and_(Contact.linked_id == from_primary_id, Contact.deleted_at.is_(None)))
            .values(linked_id=to_primary_id)
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.session.execute(statement)
        await self.session.flush()
        return result.rowcount

    async def find_by_id(self, contact_id: int) -> Optional[Contact]:
        """
        Fetch an active contact by id
        """
        query = select(Contact).where(and_(Contact.id == contact_id, Contact.deleted_at.is_(None)))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def count(self) -> int:
        """Number of active contacts"""
        result = await self.session.execute(
            select(func.count(Contact.id)).where(Contact.deleted_at.is_(None))
        )
        return result.scalar_one()
