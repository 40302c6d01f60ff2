"""
Ban lookup with lazy expiry.

There is no background sweep. A ban whose ``banned_until`` has passed is
deleted from the store the first time someone looks it up, and the lookup
reports "not banned". The delete is conditional on the ``banned_until`` value
that was observed, so a fresh ban written by a moderator in between is left
alone, and deleting a row that is already gone is not an error.
"""

from __future__ import annotations
import logging
import time
from typing import Callable, Optional

from .records import Ban, PERMANENT

logger = logging.getLogger(__name__)


class BanRegistry:
    def __init__(self, store, clock: Callable[[], float] = time.time):
        self._store = store
        self._clock = clock

    def check_ban(self, nickname: str) -> Optional[Ban]:
        """
        Return the active ban for nickname, or None.

        Raises PersistenceUnavailable if the store cannot be reached; the
        caller decides whether that fails open or closed.
        """
        ban = self._store.get_ban(nickname)
        if ban is None:
            return None
        if ban.permanent:
            return ban

        if ban.expired(self._clock()):
            self._store.delete_ban(nickname, banned_until=ban.banned_until)
            logger.info("Expired ban for %s removed", nickname)
            return None
        return ban

    def ban(self, nickname: str, reason: str, duration: Optional[float] = None) -> Ban:
        """Ban nickname for ``duration`` seconds, or permanently when None."""
        now = self._clock()
        until = PERMANENT if duration is None else now + float(duration)
        record = Ban(nickname=nickname, reason=reason, banned_until=until, banned_at=now)
        self._store.upsert_ban(record)
        logger.warning(
            "Banned %s (%s) %s",
            nickname,
            reason,
            "permanently" if duration is None else f"for {int(duration)}s",
        )
        return record

    def unban(self, nickname: str) -> None:
        self._store.delete_ban(nickname)
        logger.info("Ban lifted for %s", nickname)
