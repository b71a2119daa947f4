"""
Transaction reference allocation.

References look like ``TXN-1718000000000-K3J9Q0ZP1`` (prefix, epoch millis,
nine upper-case base36 characters). ``transactions.reference`` is unique in
the store, so a collision that slips past the existence check still fails
the commit rather than producing a duplicate.
"""

import logging
import secrets
import time

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .exceptions import StoreOperationFailed

log = logging.getLogger(__name__)

BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
SUFFIX_LENGTH = 9
MAX_ATTEMPTS = 5

TRANSFER_PREFIX = "TXN"
FUNDING_PREFIX = "FUND"


class ReferenceService:

    @staticmethod
    def generate_reference(prefix: str = TRANSFER_PREFIX) -> str:
        millis = int(time.time() * 1000)
        suffix = "".join(secrets.choice(BASE36) for _ in range(SUFFIX_LENGTH))
        return f"{prefix}-{millis}-{suffix}"

    @staticmethod
    async def allocate_reference(db: AsyncSession, prefix: str = TRANSFER_PREFIX) -> str:
        """Draw references until one is not already stored."""
        for attempt in range(1, MAX_ATTEMPTS + 1):
            candidate = ReferenceService.generate_reference(prefix)
            if not await crud.reference_exists(db, candidate):
                return candidate
            log.warning("Reference collision on %s (attempt %d)", candidate, attempt)
        raise StoreOperationFailed("Could not allocate a transaction reference. Please try again.")
