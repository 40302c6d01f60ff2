"""
Daily request budget per API key.

Quota records live in the store. The counter for a key is reset lazily: the
first admission more than 24h after ``last_reset`` zeroes it before deciding.
Fetch, decide and write happen under a per-key lock so two concurrent requests
on the same key cannot both take the last slot. Locks come from a fixed pool
indexed by the key hash, so unknown keys cannot grow it.
"""

from __future__ import annotations
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import InvalidCredential, QuotaExceeded
from .records import ApiKeyQuota

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60
DEFAULT_DAILY_LIMIT = 1000
LOCK_STRIPES = 64


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    remaining: int
    retry_after: Optional[float] = None


class QuotaManager:
    def __init__(
        self,
        store,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self.daily_limit = int(daily_limit)
        self._clock = clock
        self._locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def _load(self, key: str) -> ApiKeyQuota:
        record = self._store.get_quota(key)
        if record is None or record.revoked:
            raise InvalidCredential()
        return record

    def admit(self, credential_key: str) -> QuotaDecision:
        """
        Count one request against the key's daily budget.

        Raises InvalidCredential for unknown or revoked keys. A denial is a
        normal QuotaDecision(allowed=False); use enforce() to get an exception.
        """
        if not credential_key:
            raise InvalidCredential("API key required.")

        with self._lock_for(credential_key):
            record = self._load(credential_key)
            now = self._clock()

            if now - record.last_reset > DAY_SECONDS:
                record.requests_today = 0
                record.last_reset = now

            if record.requests_today >= self.daily_limit:
                return QuotaDecision(False, 0, record.last_reset + DAY_SECONDS - now)

            record.requests_today += 1
            record.last_used = now
            self._store.upsert_quota(record)
            return QuotaDecision(True, self.daily_limit - record.requests_today)

    def enforce(self, credential_key: str) -> QuotaDecision:
        decision = self.admit(credential_key)
        if not decision.allowed:
            logger.info("Daily quota exhausted for key %s...", credential_key[:6])
            raise QuotaExceeded(decision.retry_after)
        return decision

    def register_credential(self, owner: str, label: str = "") -> str:
        """Issue a new API key for owner and return it."""
        now = self._clock()
        key = secrets.token_urlsafe(24)
        self._store.upsert_quota(ApiKeyQuota(
            key=key,
            owner=owner,
            label=label,
            requests_today=0,
            last_reset=now,
            created_at=now,
        ))
        logger.info("Issued API key for %s (%s)", owner, label or "no label")
        return key

    def revoke_credential(self, credential_key: str, owner: str) -> None:
        """Revoke a key. Only its owner may do this."""
        with self._lock_for(credential_key):
            record = self._load(credential_key)
            if record.owner != owner:
                raise InvalidCredential("API key does not belong to this owner.")
            record.revoked = True
            self._store.upsert_quota(record)
        logger.info("Revoked API key for %s", owner)
