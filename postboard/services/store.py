"""
Persistence backends.

The guard layer only needs ban and API-key records; the routes also need users,
posts, reactions and comments. Two interchangeable backends are provided:

- MemoryStore: thread-safe dicts. Used for local development and tests.
- SupabaseStore: Supabase tables (users, posts, reactions, comments, bans,
  api_keys). Any client error is re-raised as PersistenceUnavailable.

Select one with STORE_BACKEND in config; create_store() builds it.
"""

from __future__ import annotations
import itertools
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .errors import PersistenceUnavailable
from .records import ApiKeyQuota, Ban

logger = logging.getLogger(__name__)


class Store:
    """Interface shared by the backends."""

    # --- guard collaborator ---
    def get_ban(self, nickname: str) -> Optional[Ban]:
        raise NotImplementedError

    def upsert_ban(self, ban: Ban) -> None:
        raise NotImplementedError

    def delete_ban(self, nickname: str, banned_until: Optional[float] = None) -> None:
        """Delete nickname's ban; when banned_until is given, only if it still matches."""
        raise NotImplementedError

    def get_quota(self, key: str) -> Optional[ApiKeyQuota]:
        raise NotImplementedError

    def upsert_quota(self, record: ApiKeyQuota) -> None:
        raise NotImplementedError

    # --- routing layer ---
    def create_user(self, nickname: str) -> bool:
        """Insert a user. Returns False when the nickname is taken."""
        raise NotImplementedError

    def get_user(self, nickname: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def list_posts(self) -> List[Dict[str, Any]]:
        """All posts, newest first, each with an aggregated reaction ``score``."""
        raise NotImplementedError

    def list_posts_by(self, nickname: str, limit: int = 20) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def create_post(self, nickname: str, content: str) -> Dict[str, Any]:
        raise NotImplementedError

    def upsert_reaction(self, post_id: int, nickname: str, value: int) -> None:
        raise NotImplementedError

    def create_comment(self, post_id: int, nickname: str, content: str) -> Dict[str, Any]:
        raise NotImplementedError

    def list_comments(self, post_ids: Iterable[int]) -> List[Dict[str, Any]]:
        """Comments on the given posts, oldest first."""
        raise NotImplementedError

    def count_posts(self, nickname: str) -> int:
        raise NotImplementedError

    def count_comments(self, nickname: str) -> int:
        raise NotImplementedError


class MemoryStore(Store):
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self.users: Dict[str, Dict[str, Any]] = {}
        self.posts: Dict[int, Dict[str, Any]] = {}
        self.reactions: Dict[Tuple[int, str], int] = {}
        self.comments: List[Dict[str, Any]] = []
        self.bans: Dict[str, Ban] = {}
        self.quotas: Dict[str, ApiKeyQuota] = {}

    def get_ban(self, nickname):
        with self._lock:
            ban = self.bans.get(nickname)
            return Ban(**ban.to_dict()) if ban else None

    def upsert_ban(self, ban):
        with self._lock:
            self.bans[ban.nickname] = Ban(**ban.to_dict())

    def delete_ban(self, nickname, banned_until=None):
        with self._lock:
            current = self.bans.get(nickname)
            if current is None:
                return
            if banned_until is not None and current.banned_until != banned_until:
                return
            del self.bans[nickname]

    def get_quota(self, key):
        with self._lock:
            record = self.quotas.get(key)
            return ApiKeyQuota(**record.to_dict()) if record else None

    def upsert_quota(self, record):
        with self._lock:
            self.quotas[record.key] = ApiKeyQuota(**record.to_dict())

    def create_user(self, nickname):
        with self._lock:
            if nickname in self.users:
                return False
            self.users[nickname] = {"nickname": nickname, "created_at": self._clock()}
            return True

    def get_user(self, nickname):
        with self._lock:
            user = self.users.get(nickname)
            return dict(user) if user else None

    def _score(self, post_id: int) -> int:
        return sum(v for (pid, _), v in self.reactions.items() if pid == post_id)

    def list_posts(self):
        with self._lock:
            rows = [dict(p, score=self._score(p["id"])) for p in self.posts.values()]
        rows.sort(key=lambda p: (p["created_at"], p["id"]), reverse=True)
        return rows

    def list_posts_by(self, nickname, limit=20):
        return [p for p in self.list_posts() if p["nickname"] == nickname][:limit]

    def create_post(self, nickname, content):
        with self._lock:
            post = {
                "id": next(self._ids),
                "nickname": nickname,
                "content": content,
                "created_at": self._clock(),
            }
            self.posts[post["id"]] = post
            return dict(post)

    def upsert_reaction(self, post_id, nickname, value):
        with self._lock:
            self.reactions[(post_id, nickname)] = value

    def create_comment(self, post_id, nickname, content):
        with self._lock:
            comment = {
                "id": next(self._ids),
                "post_id": post_id,
                "nickname": nickname,
                "content": content,
                "created_at": self._clock(),
            }
            self.comments.append(comment)
            return dict(comment)

    def list_comments(self, post_ids):
        wanted = set(post_ids)
        with self._lock:
            rows = [dict(c) for c in self.comments if c["post_id"] in wanted]
        rows.sort(key=lambda c: (c["created_at"], c["id"]))
        return rows

    def count_posts(self, nickname):
        with self._lock:
            return sum(1 for p in self.posts.values() if p["nickname"] == nickname)

    def count_comments(self, nickname):
        with self._lock:
            return sum(1 for c in self.comments if c["nickname"] == nickname)


class SupabaseStore(Store):
    """
    Supabase-backed store.

    Uses the service-role client so row-level security does not hide ban and
    key records from the server.
    """

    def __init__(self, client, clock: Callable[[], float] = time.time):
        self._client = client
        self._clock = clock

    def _run(self, what: str, query):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Supabase {what} failed: {e}")
            raise PersistenceUnavailable() from e

    def _one(self, what: str, query) -> Optional[Dict[str, Any]]:
        response = self._run(what, query.maybe_single())
        # maybe_single() yields no response at all for zero rows on newer clients
        if response is None:
            return None
        return response.data or None

    def get_ban(self, nickname):
        row = self._one("get_ban", self._client.table("bans").select("*").eq("nickname", nickname))
        return Ban.from_dict(row) if row else None

    def upsert_ban(self, ban):
        self._run("upsert_ban", self._client.table("bans").upsert(ban.to_dict()))

    def delete_ban(self, nickname, banned_until=None):
        query = self._client.table("bans").delete().eq("nickname", nickname)
        if banned_until is not None:
            query = query.eq("banned_until", banned_until)
        self._run("delete_ban", query)

    def get_quota(self, key):
        row = self._one("get_quota", self._client.table("api_keys").select("*").eq("key", key))
        return ApiKeyQuota.from_dict(row) if row else None

    def upsert_quota(self, record):
        self._run("upsert_quota", self._client.table("api_keys").upsert(record.to_dict()))

    def create_user(self, nickname):
        try:
            self._client.table("users").insert({
                "nickname": nickname,
                "created_at": self._clock(),
            }).execute()
            return True
        except Exception as e:
            error_msg = str(e)
            if "duplicate key" in error_msg or "23505" in error_msg:
                return False
            logger.error(f"Supabase create_user failed: {e}")
            raise PersistenceUnavailable() from e

    def get_user(self, nickname):
        return self._one("get_user", self._client.table("users").select("*").eq("nickname", nickname))

    def _with_scores(self, posts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not posts:
            return []
        ids = [p["id"] for p in posts]
        response = self._run(
            "list_reactions",
            self._client.table("reactions").select("post_id,value").in_("post_id", ids),
        )
        scores: Dict[int, int] = {}
        for row in response.data or []:
            scores[row["post_id"]] = scores.get(row["post_id"], 0) + int(row["value"])
        return [dict(p, score=scores.get(p["id"], 0)) for p in posts]

    def list_posts(self):
        response = self._run(
            "list_posts",
            self._client.table("posts").select("*").order("created_at", desc=True),
        )
        return self._with_scores(response.data or [])

    def list_posts_by(self, nickname, limit=20):
        response = self._run(
            "list_posts_by",
            self._client.table("posts").select("*").eq("nickname", nickname)
            .order("created_at", desc=True).limit(limit),
        )
        return self._with_scores(response.data or [])

    def create_post(self, nickname, content):
        response = self._run("create_post", self._client.table("posts").insert({
            "nickname": nickname,
            "content": content,
            "created_at": self._clock(),
        }))
        return response.data[0] if response.data else {}

    def upsert_reaction(self, post_id, nickname, value):
        self._run("upsert_reaction", self._client.table("reactions").upsert({
            "post_id": post_id,
            "nickname": nickname,
            "value": value,
        }))

    def create_comment(self, post_id, nickname, content):
        response = self._run("create_comment", self._client.table("comments").insert({
            "post_id": post_id,
            "nickname": nickname,
            "content": content,
            "created_at": self._clock(),
        }))
        return response.data[0] if response.data else {}

    def list_comments(self, post_ids):
        ids = list(post_ids)
        if not ids:
            return []
        response = self._run(
            "list_comments",
            self._client.table("comments").select("*").in_("post_id", ids).order("created_at"),
        )
        return response.data or []

    def _count(self, table: str, nickname: str) -> int:
        response = self._run(
            f"count_{table}",
            self._client.table(table).select("id", count="exact").eq("nickname", nickname),
        )
        return response.count or 0

    def count_posts(self, nickname):
        return self._count("posts", nickname)

    def count_comments(self, nickname):
        return self._count("comments", nickname)


def create_store(app) -> Store:
    """Build the backend named by STORE_BACKEND."""
    backend = app.config.get("STORE_BACKEND", "memory").lower()

    if backend == "supabase":
        from supabase import create_client

        url = app.config.get("SUPABASE_URL", "")
        service_key = app.config.get("SUPABASE_SERVICE_ROLE_KEY", "")
        if not url or not service_key:
            raise RuntimeError("STORE_BACKEND=supabase needs SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        app.logger.info("Using Supabase store")
        return SupabaseStore(create_client(url, service_key))

    if backend != "memory":
        raise RuntimeError(f"Unknown STORE_BACKEND {backend!r}")
    app.logger.warning("Using in-memory store; data is lost on restart")
    return MemoryStore()
