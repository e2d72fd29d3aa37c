"""
Business logic services for the Contact Reconciliation API
Contains the identity reconciliation engine, the keyed mutex that
serializes it, and the response assembly for consolidated contacts.
"""

from .identity_service import IdentityService, identity_service
from .keyed_mutex import KeyedMutex
from .response_assembler import assemble_contact_response

# Export all services for easy importing
__all__ = [
    "IdentityService",
    "identity_service",
    "KeyedMutex",
    "assemble_contact_response"
]
