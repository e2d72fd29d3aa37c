"""
Contact model for the Contact Reconciliation Service
This module defines the Contact database model for storing customer
contact information and managing identity linking relationships.
Supports primary/secondary contact hierarchy and soft delete functionality.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String

from .base import BaseModel

PRIMARY = "primary"
SECONDARY = "secondary"


class Contact(BaseModel):
    """
    Contact model representing customer contact information

    Stores normalized email and phone number data with linking relationships
    to support identity reconciliation. Each contact is either 'primary'
    (the oldest contact of its cluster) or 'secondary' (linked to a primary).
    Linkage is always one level deep: a secondary never points at another
    secondary.

    Database Table: contacts
    """
    __tablename__ = "contacts"

    # Contact information fields - at least one must be provided
    phone_number = Column(
        String(64),
        nullable=True,
        index=True,
        comment="Customer phone number, digits only"
    )

    email = Column(
        String(255),
        nullable=True,
        index=True,
        comment="Customer email address, trimmed and lowercased"
    )

    # Identity linking fields
    linked_id = Column(
        Integer,
        ForeignKey("contacts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="ID of the primary contact this secondary contact links to"
    )

    link_precedence = Column(
        String(10),
        nullable=False,
        default=PRIMARY,
        comment="Either 'primary' (cluster representative) or 'secondary' (linked contact)"
    )

    # Database constraints
    __table_args__ = (
        CheckConstraint(
            link_precedence.in_([PRIMARY, SECONDARY]),
            name="valid_link_precedence"
        ),

        CheckConstraint(
            "(phone_number IS NOT NULL) OR (email IS NOT NULL)",
            name="contact_info_required"
        ),

        CheckConstraint(
            "(link_precedence = 'primary' AND linked_id IS NULL) OR "
            "(link_precedence = 'secondary' AND linked_id IS NOT NULL)",
            name="secondary_must_have_linked_id"
        ),

        Index("ix_contact_precedence_linked", link_precedence, linked_id),
    )

    def __repr__(self):
        """String representation showing key contact information"""
        contact_info = []
        if self.email:
            contact_info.append(f"email={self.email}")
        if self.phone_number:
            contact_info.append(f"phone={self.phone_number}")

        return (
            f"<Contact(id={self.id}, "
            f"{', '.join(contact_info)}, "
            f"precedence={self.link_precedence}, linked_id={self.linked_id})>"
        )

    def is_primary(self):
        """Check if this is a primary contact"""
        return self.link_precedence == PRIMARY

    def is_secondary(self):
        """Check if this is a secondary contact"""
        return self.link_precedence == SECONDARY

    @property
    def primary_id(self):
        """
        Id of the primary of this contact's cluster
        Returns own id for a primary, the linked id for a secondary
        """
        if self.is_primary():
            return self.id
        return self.linked_id

    def to_dict(self):
        """Convert contact to dictionary with formatted timestamps"""
        data = super().to_dict()

        for field in ("created_at", "updated_at", "deleted_at"):
            if data.get(field):
                data[field] = data[field].isoformat()

        return data
