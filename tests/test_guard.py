"""
Guard facade tests: cache slots, ban enforcement and fail-closed behaviour.
"""

from unittest.mock import MagicMock

import pytest

from postboard import config as app_config
from postboard.services.cache import MISS
from postboard.services.errors import Banned, PersistenceUnavailable, ProfanityDetected
from postboard.services.guard import Guard
from postboard.services.records import PERMANENT, Ban

LIMITS = {
    "general": {"window": 60, "cap": 100},
    "write": {"window": 60, "cap": 20},
    "auth": {"window": 60, "cap": 5},
}


@pytest.fixture
def service(store, clock):
    return Guard(store, LIMITS, clock=clock)


class TestConstruction:
    def test_from_config(self, store, clock):
        config = {k: getattr(app_config.TestConfig, k) for k in dir(app_config.TestConfig) if k.isupper()}
        guard = Guard.from_config(config, store, clock)

        assert guard.author_cache().capacity == 100
        assert guard.feed_cache().ttl == 5
        assert guard.quotas.daily_limit == 1000
        assert guard.limiters["write"].cap == 20
        assert guard.matcher.scattered is True

    def test_instances_are_isolated(self, store, clock):
        a = Guard(store, LIMITS, clock=clock)
        b = Guard(store, LIMITS, clock=clock)
        a.cache_put("feed", ["a"])
        a.admit_rate("write", "alice")
        assert b.cache_get("feed") is MISS
        assert b.admit_rate("write", "alice").remaining == 19

    def test_scattered_toggle(self, store, clock):
        guard = Guard(store, LIMITS, scattered_match=False, clock=clock)
        assert guard.contains_profanity("she enjoyed the relaxing view") is False
        assert guard.contains_profanity("s3x") is True


class TestCacheSlots:
    def test_global_slot(self, service, clock):
        assert service.cache_get("feed") is MISS
        service.cache_put("feed", [1, 2])
        assert service.cache_get("feed") == [1, 2]
        service.cache_invalidate("feed")
        assert service.cache_get("feed") is MISS

    def test_keyed_slot(self, service):
        service.cache_put("author", "alice", {"posts": 3})
        assert service.cache_get("author", "alice") == {"posts": 3}
        assert service.cache_get("author", "bob") is MISS
        assert service.cache_evict_if_present("author", "alice") is True
        assert service.cache_evict_if_present("author", "alice") is False
        assert service.cache_get("author", "alice") is MISS

    def test_invalidate_after_write(self, service):
        service.cache_put("feed", ["old"])
        service.cache_put("author", "alice", {"posts": 1})
        service.cache_put("author", "bob", {"posts": 2})

        service.invalidate_after_write("alice")

        assert service.cache_get("feed") is MISS
        assert "alice" not in service.author_cache()
        assert service.cache_get("author", "bob") == {"posts": 2}

    def test_cache_put_arity(self, service):
        with pytest.raises(TypeError):
            service.cache_put("author", "a", "b", "c")


class TestEnforcement:
    def test_not_banned(self, service):
        service.enforce_not_banned("alice")

    def test_banned_carries_reason_and_remaining(self, service, store, clock):
        store.upsert_ban(Ban("spammer", "spam", clock() + 600, clock()))
        with pytest.raises(Banned) as exc:
            service.enforce_not_banned("spammer")
        assert exc.value.reason == "spam"
        assert exc.value.remaining == pytest.approx(600)
        assert exc.value.to_dict()["remaining"] == 600

    def test_permanent_ban_reports_permanent(self, service, store, clock):
        store.upsert_ban(Ban("troll", "abuse", PERMANENT, clock()))
        with pytest.raises(Banned) as exc:
            service.enforce_not_banned("troll", write=False)
        assert exc.value.permanent
        assert exc.value.to_dict()["remaining"] == "permanent"
        assert exc.value.retryable is False

    def test_store_down_fails_closed_for_writes(self, clock):
        store = MagicMock()
        store.get_ban.side_effect = PersistenceUnavailable()
        guard = Guard(store, LIMITS, clock=clock)

        with pytest.raises(PersistenceUnavailable):
            guard.enforce_not_banned("alice", write=True)

    def test_store_down_fails_open_for_reads(self, clock):
        store = MagicMock()
        store.get_ban.side_effect = PersistenceUnavailable()
        guard = Guard(store, LIMITS, clock=clock)

        guard.enforce_not_banned("alice", write=False)

    def test_quota_store_down_denies(self, clock):
        store = MagicMock()
        store.get_quota.side_effect = PersistenceUnavailable()
        guard = Guard(store, LIMITS, clock=clock)

        with pytest.raises(PersistenceUnavailable):
            guard.admit_quota("key")

    def test_enforce_clean_text(self, service):
        service.enforce_clean_text("Good morning", actor="alice")
        with pytest.raises(ProfanityDetected):
            service.enforce_clean_text("p3n15", actor="alice")

    def test_enforce_clean_text_goes_through_matcher(self, service, monkeypatch):
        calls = []
        original = service.matcher.check_text

        def spy(text):
            calls.append(text)
            return original(text)

        monkeypatch.setattr(service.matcher, "check_text", spy)
        with pytest.raises(ProfanityDetected) as exc:
            service.enforce_clean_text("v4g1n4", actor="alice")
        assert calls == ["v4g1n4"]
        assert exc.value.word == "vagina"

    def test_credential_round(self, service):
        key = service.register_credential("alice", "bot")
        assert service.admit_quota(key).allowed
        assert service.enforce_quota(key).remaining == 998
        service.revoke_credential(key, "alice")
