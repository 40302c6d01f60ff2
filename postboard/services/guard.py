"""
Admission and moderation facade handed to the routes.

One Guard is built per app by create_app() and stored on
``app.extensions["guard"]``; nothing here is a module-level singleton, so
tests can build as many isolated instances as they like.

Order of checks on a write: rate limit (per actor) or quota (per API key),
then ban, then profanity on any user-supplied text.
"""

from __future__ import annotations
import logging
import time
from typing import Any, Callable, Hashable, Mapping, Optional

from .bans import BanRegistry
from .cache import BoundedKeyedCache, TTLCache
from .errors import Banned, PersistenceUnavailable, ProfanityDetected
from .moderation import ProfanityMatcher
from .quotas import QuotaDecision, QuotaManager
from .rate_limit import RateDecision, RateLimiters
from .records import Ban

logger = logging.getLogger(__name__)

FEED_SLOT = "feed"
AUTHOR_SLOT = "author"


class Guard:
    def __init__(
        self,
        store,
        rate_limits: Mapping[str, Mapping[str, float]],
        feed_ttl: float = 5.0,
        author_ttl: float = 5.0,
        author_capacity: int = 100,
        daily_quota: int = 1000,
        scattered_match: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.clock = clock
        self.matcher = ProfanityMatcher(scattered=scattered_match)
        self.limiters = RateLimiters(rate_limits, clock)
        self.bans = BanRegistry(store, clock)
        self.quotas = QuotaManager(store, daily_quota, clock)
        self._single = {FEED_SLOT: TTLCache(feed_ttl, clock)}
        self._keyed = {AUTHOR_SLOT: BoundedKeyedCache(author_ttl, author_capacity, clock)}

    @classmethod
    def from_config(cls, config: Mapping[str, Any], store, clock: Callable[[], float] = time.time) -> "Guard":
        return cls(
            store,
            rate_limits=config["RATE_LIMIT_CLASSES"],
            feed_ttl=config.get("FEED_CACHE_TTL", 5),
            author_ttl=config.get("AUTHOR_CACHE_TTL", 5),
            author_capacity=config.get("AUTHOR_CACHE_CAPACITY", 100),
            daily_quota=config.get("QUOTA_DAILY_LIMIT", 1000),
            scattered_match=config.get("PROFANITY_SCATTERED_MATCH", True),
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def contains_profanity(self, text: Optional[str]) -> bool:
        return self.matcher.contains_profanity(text)

    def enforce_clean_text(self, text: Optional[str], actor: str = "") -> None:
        try:
            self.matcher.check_text(text)
        except ProfanityDetected as e:
            logger.info("Profanity rejected from %s (root %r)", actor or "anonymous", e.word)
            raise

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    def admit_rate(self, limiter_class: str, key: str) -> RateDecision:
        return self.limiters.admit(limiter_class, key)

    def enforce_rate(self, limiter_class: str, key: str) -> RateDecision:
        return self.limiters.enforce(limiter_class, key)

    # ------------------------------------------------------------------
    # Bans
    # ------------------------------------------------------------------

    def check_ban(self, nickname: str) -> Optional[Ban]:
        return self.bans.check_ban(nickname)

    def enforce_not_banned(self, nickname: str, write: bool = True) -> None:
        """
        Raise Banned if nickname has an active ban.

        If the store is down, writes are refused (PersistenceUnavailable
        propagates) while reads go ahead as if there were no ban.
        """
        try:
            ban = self.bans.check_ban(nickname)
        except PersistenceUnavailable:
            if write:
                logger.error("Ban check for %s failed; refusing write", nickname)
                raise
            logger.warning("Ban check for %s failed; allowing read", nickname)
            return

        if ban is not None:
            raise Banned(nickname, ban.reason, ban.remaining(self.clock()))

    # ------------------------------------------------------------------
    # Caches
    # ------------------------------------------------------------------

    def cache_get(self, slot: str, key: Hashable = None) -> Any:
        if key is None:
            return self._single[slot].get()
        return self._keyed[slot].get(key)

    def cache_put(self, slot: str, *args: Any) -> None:
        """cache_put(slot, value) or cache_put(slot, key, value)."""
        if len(args) == 1:
            self._single[slot].put(args[0])
        elif len(args) == 2:
            self._keyed[slot].put(args[0], args[1])
        else:
            raise TypeError("cache_put() takes a value, or a key and a value")

    def cache_invalidate(self, slot: str) -> None:
        self._single[slot].invalidate()

    def cache_evict_if_present(self, slot: str, key: Hashable) -> bool:
        return self._keyed[slot].evict(key)

    def feed_cache(self) -> TTLCache:
        return self._single[FEED_SLOT]

    def author_cache(self) -> BoundedKeyedCache:
        return self._keyed[AUTHOR_SLOT]

    def invalidate_after_write(self, nickname: str) -> None:
        """A write by nickname changed the feed and that author's aggregates."""
        self.cache_invalidate(FEED_SLOT)
        self.cache_evict_if_present(AUTHOR_SLOT, nickname)

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    def admit_quota(self, credential_key: str) -> QuotaDecision:
        return self.quotas.admit(credential_key)

    def enforce_quota(self, credential_key: str) -> QuotaDecision:
        return self.quotas.enforce(credential_key)

    def register_credential(self, owner: str, label: str = "") -> str:
        return self.quotas.register_credential(owner, label)

    def revoke_credential(self, credential_key: str, owner: str) -> None:
        self.quotas.revoke_credential(credential_key, owner)
