"""
Store backend tests.

MemoryStore is exercised directly; SupabaseStore is tested against a mocked
Supabase client to check query shapes and error wrapping.
"""

from unittest.mock import MagicMock, Mock

import pytest

from postboard.services.errors import PersistenceUnavailable
from postboard.services.records import PERMANENT, ApiKeyQuota, Ban
from postboard.services.store import SupabaseStore


class TestMemoryStore:
    def test_create_user_once(self, store):
        assert store.create_user("alice") is True
        assert store.create_user("alice") is False
        assert store.get_user("alice")["nickname"] == "alice"
        assert store.get_user("bob") is None

    def test_posts_newest_first_with_scores(self, store, clock):
        first = store.create_post("alice", "first")
        clock.advance(1)
        second = store.create_post("bob", "second")

        store.upsert_reaction(first["id"], "bob", 1)
        store.upsert_reaction(first["id"], "carol", 1)
        store.upsert_reaction(first["id"], "carol", -1)  # replaces carol's earlier vote

        posts = store.list_posts()
        assert [p["id"] for p in posts] == [second["id"], first["id"]]
        assert posts[1]["score"] == 0
        assert posts[0]["score"] == 0

        store.upsert_reaction(second["id"], "alice", 1)
        assert store.list_posts()[0]["score"] == 1

    def test_comments_oldest_first_filtered_by_post(self, store, clock):
        post = store.create_post("alice", "hi")
        other = store.create_post("alice", "other")
        store.create_comment(post["id"], "bob", "one")
        clock.advance(1)
        store.create_comment(other["id"], "bob", "elsewhere")
        store.create_comment(post["id"], "carol", "two")

        comments = store.list_comments([post["id"]])
        assert [c["content"] for c in comments] == ["one", "two"]
        assert store.list_comments([]) == []

    def test_counts_and_author_posts(self, store):
        store.create_post("alice", "a1")
        store.create_post("alice", "a2")
        post = store.create_post("bob", "b1")
        store.create_comment(post["id"], "alice", "c")

        assert store.count_posts("alice") == 2
        assert store.count_comments("alice") == 1
        assert [p["content"] for p in store.list_posts_by("alice", limit=1)] == ["a2"]

    def test_returned_records_are_copies(self, store, clock):
        store.upsert_ban(Ban("troll", "abuse", PERMANENT, clock()))
        ban = store.get_ban("troll")
        ban.reason = "changed"
        assert store.get_ban("troll").reason == "abuse"

        store.upsert_quota(ApiKeyQuota(key="k", owner="alice"))
        record = store.get_quota("k")
        record.requests_today = 50
        assert store.get_quota("k").requests_today == 0

    def test_conditional_delete_ban(self, store, clock):
        store.upsert_ban(Ban("spammer", "spam", 500.0, clock()))
        store.delete_ban("spammer", banned_until=400.0)
        assert store.get_ban("spammer") is not None
        store.delete_ban("spammer", banned_until=500.0)
        assert store.get_ban("spammer") is None
        store.delete_ban("spammer")


@pytest.fixture
def supabase():
    return MagicMock()


class TestSupabaseStore:
    def test_get_ban_maps_row(self, supabase):
        query = supabase.table.return_value.select.return_value.eq.return_value
        query.maybe_single.return_value.execute.return_value = Mock(data={
            "nickname": "troll",
            "reason": "abuse",
            "banned_until": -1,
            "banned_at": 100,
        })

        ban = SupabaseStore(supabase).get_ban("troll")

        supabase.table.assert_called_with("bans")
        supabase.table.return_value.select.return_value.eq.assert_called_with("nickname", "troll")
        assert ban == Ban("troll", "abuse", -1.0, 100.0)
        assert ban.permanent

    def test_missing_row(self, supabase):
        query = supabase.table.return_value.select.return_value.eq.return_value
        query.maybe_single.return_value.execute.return_value = None
        assert SupabaseStore(supabase).get_ban("nobody") is None

    def test_client_error_becomes_persistence_unavailable(self, supabase):
        query = supabase.table.return_value.select.return_value.eq.return_value
        query.maybe_single.return_value.execute.side_effect = ConnectionError("down")
        with pytest.raises(PersistenceUnavailable):
            SupabaseStore(supabase).get_quota("k")

    def test_conditional_delete(self, supabase):
        SupabaseStore(supabase).delete_ban("spammer", banned_until=500.0)

        delete = supabase.table.return_value.delete.return_value
        delete.eq.assert_called_once_with("nickname", "spammer")
        delete.eq.return_value.eq.assert_called_once_with("banned_until", 500.0)
        delete.eq.return_value.eq.return_value.execute.assert_called_once()

    def test_upsert_quota_sends_record(self, supabase):
        record = ApiKeyQuota(key="k", owner="alice", requests_today=3)
        SupabaseStore(supabase).upsert_quota(record)

        supabase.table.assert_called_with("api_keys")
        supabase.table.return_value.upsert.assert_called_once_with(record.to_dict())

    def test_get_quota_maps_row(self, supabase):
        query = supabase.table.return_value.select.return_value.eq.return_value
        query.maybe_single.return_value.execute.return_value = Mock(data={
            "key": "k",
            "owner": "alice",
            "label": "bot",
            "requests_today": 7,
            "last_reset": 10,
            "last_used": None,
            "created_at": 5,
            "revoked": False,
        })
        record = SupabaseStore(supabase).get_quota("k")
        assert record.requests_today == 7
        assert record.last_used is None

    def test_duplicate_user(self, supabase):
        supabase.table.return_value.insert.return_value.execute.side_effect = Exception(
            'duplicate key value violates unique constraint "users_pkey" (23505)'
        )
        assert SupabaseStore(supabase).create_user("alice") is False

    def test_list_posts_adds_scores(self, supabase):
        posts_query = MagicMock()
        posts_query.select.return_value.order.return_value.execute.return_value = Mock(data=[
            {"id": 2, "nickname": "bob", "content": "b", "created_at": 2},
            {"id": 1, "nickname": "alice", "content": "a", "created_at": 1},
        ])
        reactions_query = MagicMock()
        reactions_query.select.return_value.in_.return_value.execute.return_value = Mock(data=[
            {"post_id": 1, "value": 1},
            {"post_id": 1, "value": 1},
            {"post_id": 2, "value": -1},
        ])
        supabase.table.side_effect = lambda name: {"posts": posts_query, "reactions": reactions_query}[name]

        posts = SupabaseStore(supabase).list_posts()

        assert [(p["id"], p["score"]) for p in posts] == [(2, -1), (1, 2)]
        reactions_query.select.return_value.in_.assert_called_once_with("post_id", [2, 1])
