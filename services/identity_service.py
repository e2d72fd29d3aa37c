"""
Identity Service - Core business logic for identity reconciliation
Decides whether a request creates a new identity, attaches new information
to an existing one, or merges identities that turn out to be the same
customer. Requests sharing a normalized fingerprint are serialized through
a keyed mutex and every reconciliation runs in a single transaction.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError

from database import DatabaseManager, db_manager
from exceptions import (
    ConcurrencyConflictError,
    DataIntegrityError,
    ReconciliationError,
    ReconciliationTimeoutError,
    StoreUnavailableError,
)
from models.contact import Contact, SECONDARY
from repositories.contact_repository import ContactRepository
from schemas.identify import ContactResponse, IdentifyRequest, IdentifyResponse
from config import settings
from utils.normalize import build_lock_key, normalize_email, normalize_phone
from .keyed_mutex import KeyedMutex
from .response_assembler import assemble_contact_response

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
CONFLICT_SQLSTATES = {"40001", "40P01"}


def translate_store_error(exc: BaseException, key: str, stage: str) -> Optional[ReconciliationError]:
    """
    Map a database failure onto the reconciliation error taxonomy
    Returns None for errors that are not store faults
    """
    if isinstance(exc, DBAPIError):
        sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        if sqlstate in CONFLICT_SQLSTATES:
            return ConcurrencyConflictError(f"Concurrent update conflict: {exc.orig}", key=key, stage=stage)
        if exc.connection_invalidated or isinstance(exc, (OperationalError, InterfaceError)):
            return StoreUnavailableError(f"Database unavailable: {exc.orig}", key=key, stage=stage)
    if isinstance(exc, (ConnectionError, OSError)):
        return StoreUnavailableError(f"Database unavailable: {exc}", key=key, stage=stage)
    return None


class IdentityService:
    """
    Core service for identity reconciliation logic
    Owns the keyed mutex that serializes requests with the same fingerprint
    """

    def __init__(
        self,
        database: Optional[DatabaseManager] = None,
        lock: Optional[KeyedMutex] = None,
        timeout: Optional[float] = None
    ):
        self.db_manager = database if database is not None else db_manager
        self.lock = lock if lock is not None else KeyedMutex()
        self.timeout = timeout if timeout is not None else settings.RECONCILE_TIMEOUT_SECONDS

    async def identify_contact(self, request: IdentifyRequest) -> IdentifyResponse:
        """
        Reconcile a validated /identify request
        """
        contact = await self.reconcile(request.email, request.phoneNumber)
        return IdentifyResponse(contact=contact)

    async def reconcile(self, email, phone) -> ContactResponse:
        """
        Main orchestration method for identity reconciliation

        Algorithm:
        1. Find existing contacts matching email or phone
        2. If no matches -> create new primary contact
        3. Resolve every match to the primary of its cluster
        4. More than one primary -> merge into the oldest one
        5. Gather the cluster and attach new information as a secondary
        6. Return consolidated contact information
        """
        email = normalize_email(email)
        phone = normalize_phone(phone)
        if email is None and phone is None:
            raise ValueError("Either email or phoneNumber must be provided")

        key = build_lock_key(email, phone)
        progress = {"stage": "lock"}

        async with self.lock.hold(key):
            try:
                return await asyncio.wait_for(
                    self._reconcile_in_transaction(email, phone, progress),
                    timeout=self.timeout
                )
            except asyncio.TimeoutError as exc:
                logger.error(f"Reconciliation timed out after {self.timeout}s: key={key!r}, stage={progress['stage']}")
                raise ReconciliationTimeoutError(
                    f"Reconciliation did not finish within {self.timeout} seconds",
                    key=key,
                    stage=progress["stage"]
                ) from exc
            except ReconciliationError as exc:
                exc.key = exc.key or key
                exc.stage = exc.stage or progress["stage"]
                logger.error(f"Reconciliation failed: {exc}")
                raise
            except (SQLAlchemyError, OSError) as exc:
                translated = translate_store_error(exc, key, progress["stage"])
                logger.error(f"Store error during reconciliation: key={key!r}, stage={progress['stage']}: {exc}")
                if translated is None:
                    raise
                raise translated from exc

    async def _reconcile_in_transaction(self, email: Optional[str], phone: Optional[str], progress: dict) -> ContactResponse:
        progress["stage"] = "begin"
        async with self.db_manager.get_session() as session:
            repository = ContactRepository(session)

            # Step 1: Find directly matching contacts
            progress["stage"] = "match"
            matches = await repository.find_by_email_or_phone(email, phone)
            logger.debug(f"Found {len(matches)} matching contact(s)")

            if not matches:
                # Step 2: No matches - create new primary contact
                progress["stage"] = "create"
                primary = await repository.create(email, phone)
                logger.info(f"Created primary contact {primary.id}")
                response = assemble_contact_response(primary, [])
                progress["stage"] = "commit"
                return response

            # Step 3: Resolve matches to their cluster primaries
            progress["stage"] = "resolve"
            primary_ids = self._resolve_primary_ids(matches)
            survivor_id = primary_ids[0]
            primary = await repository.find_by_id(survivor_id)
            if primary is None or not primary.is_primary():
                raise DataIntegrityError(f"Primary contact {survivor_id} is missing or not a primary")

            # Step 4: Several clusters matched - the oldest absorbs the others
            if len(primary_ids) > 1:
                progress["stage"] = "merge"
                await self._merge_clusters(repository, primary, primary_ids[1:])

            # Step 5: Gather the full cluster
            progress["stage"] = "gather"
            secondaries = await repository.find_secondaries_of(primary.id)

            # Step 6: Attach new information as a secondary contact
            progress["stage"] = "attach"
            if self._has_new_information(primary, secondaries, email, phone):
                secondary = await repository.create(
                    email, phone, linked_id=primary.id, link_precedence=SECONDARY
                )
                secondaries.append(secondary)
                logger.info(f"Created secondary contact {secondary.id} under primary {primary.id}")

            response = assemble_contact_response(primary, secondaries)
            progress["stage"] = "commit"
            return response

    @staticmethod
    def _resolve_primary_ids(matches: Sequence[Contact]) -> List[int]:
        """
        Distinct primary ids of the matched contacts, oldest first
        """
        primary_ids = set()
        for contact in matches:
            if contact.primary_id is None:
                raise DataIntegrityError(f"Secondary contact {contact.id} has no linked primary")
            primary_ids.add(contact.primary_id)
        return sorted(primary_ids)

    async def _merge_clusters(self, repository: ContactRepository, survivor: Contact, loser_ids: Sequence[int]):
        """
        Fold newer clusters into the survivor
        Every loser must still be an active primary before anything is written.
        Each loser's secondaries are moved first, then the loser itself is
        demoted, so linkage never becomes more than one level deep.
        """
        for loser_id in loser_ids:
            loser = await repository.find_by_id(loser_id)
            if loser is None or not loser.is_primary():
                raise DataIntegrityError(f"Primary contact {loser_id} is missing or not a primary")

        for loser_id in loser_ids:
            moved = await repository.relink_all(loser_id, survivor.id)
            await repository.update_link(loser_id, linked_id=survivor.id, link_precedence=SECONDARY)
            logger.info(
                f"Merged primary {loser_id} into {survivor.id} "
                f"({moved} secondary contact(s) re-linked)"
            )

    @staticmethod
    def _has_new_information(
        primary: Contact,
        secondaries: Sequence[Contact],
        email: Optional[str],
        phone: Optional[str]
    ) -> bool:
        """
        Check if the request carries an email or phone number the cluster lacks
        """
        cluster = [primary, *secondaries]
        known_emails = {contact.email for contact in cluster if contact.email}
        known_phones = {contact.phone_number for contact in cluster if contact.phone_number}

        has_new_email = bool(email) and email not in known_emails
        has_new_phone = bool(phone) and phone not in known_phones

        return has_new_email or has_new_phone


# Global service instance
identity_service = IdentityService()
