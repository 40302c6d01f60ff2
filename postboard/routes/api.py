"""
Defines the JSON endpoints used by the front end.

Endpoints:
- POST /api/nickname: claim a nickname
- GET  /api/posts: global feed page (cached) with comments
- POST /api/posts, /api/react, /api/comments: write actions
- GET  /api/profile/<nick>: per-author summary (cached)
- POST /api/keys, DELETE /api/keys/<key>: issue/revoke API keys
- GET  /api/v1/posts: feed for API-key holders (daily quota)

Every write goes through the guard in the same order: write limiter on the
nickname, ban check, then the profanity filter on any submitted text.
Refusals are raised as AdmissionError and rendered by the app's error handler.
"""

from __future__ import annotations
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request
from flask_limiter.util import get_remote_address

from ..extensions import get_guard
from ..services.errors import InvalidCredential
from ..services.rate_limit import RateDecision
from ..utils.validation import (
    clean_content,
    clean_nickname,
    clean_post_id,
    clean_reaction,
    json_body,
)

api_bp = Blueprint("api", __name__)

API_KEY_HEADER = "X-API-Key"


@api_bp.before_request
def throttle_general_traffic():
    get_guard().enforce_rate("general", get_remote_address())


def _bad_request(message: str):
    return jsonify({"success": False, "error": "invalid", "message": message}), 400


def _nickname_from(body) -> tuple[str, Optional[str]]:
    return clean_nickname(body.get("nickname"), current_app.config["MAX_NICKNAME_LEN"])


def _admit_write(nickname: str) -> RateDecision:
    guard = get_guard()
    decision = guard.enforce_rate("write", nickname)
    guard.enforce_not_banned(nickname, write=True)
    return decision


def _feed_page(offset: int) -> Dict[str, Any]:
    guard = get_guard()
    posts = guard.feed_cache().get_or_compute(guard.store.list_posts)
    size = current_app.config["FEED_PAGE_SIZE"]
    page = posts[offset:offset + size]
    comments = guard.store.list_comments([p["id"] for p in page])
    return {"posts": page, "comments": comments}


def _offset() -> int:
    return max(0, request.args.get("offset", 0, type=int) or 0)


@api_bp.route("/nickname", methods=["POST"])
def claim_nickname():
    guard = get_guard()
    guard.enforce_rate("auth", get_remote_address())

    nickname, error = _nickname_from(json_body(request.get_json(silent=True)))
    if error:
        return _bad_request(error)
    guard.enforce_clean_text(nickname, actor=nickname)

    if not guard.store.create_user(nickname):
        return jsonify({"success": False, "error": "taken"}), 409

    guard.cache_evict_if_present("author", nickname)
    current_app.logger.info(f"Nickname claimed: {nickname}")
    return jsonify({"success": True, "nickname": nickname}), 200


@api_bp.route("/posts", methods=["GET"])
def list_posts():
    return jsonify(_feed_page(_offset()))


@api_bp.route("/posts", methods=["POST"])
def create_post():
    guard = get_guard()
    body = json_body(request.get_json(silent=True))

    nickname, error = _nickname_from(body)
    if error:
        return _bad_request(error)
    decision = _admit_write(nickname)

    content, error = clean_content(body.get("content"), current_app.config["MAX_POST_LEN"])
    if error:
        return _bad_request(error)
    guard.enforce_clean_text(content, actor=nickname)

    post = guard.store.create_post(nickname, content)
    guard.invalidate_after_write(nickname)
    return jsonify({"success": True, "post": post, "remaining": decision.remaining}), 200


@api_bp.route("/react", methods=["POST"])
def react():
    guard = get_guard()
    body = json_body(request.get_json(silent=True))

    nickname, error = _nickname_from(body)
    if error:
        return _bad_request(error)
    decision = _admit_write(nickname)

    post_id, error = clean_post_id(body.get("post_id"))
    if error:
        return _bad_request(error)
    value, error = clean_reaction(body.get("value"))
    if error:
        return _bad_request(error)

    guard.store.upsert_reaction(post_id, nickname, value)
    # Scores are part of the cached feed
    guard.cache_invalidate("feed")
    return jsonify({"success": True, "remaining": decision.remaining}), 200


@api_bp.route("/comments", methods=["POST"])
def create_comment():
    guard = get_guard()
    body = json_body(request.get_json(silent=True))

    nickname, error = _nickname_from(body)
    if error:
        return _bad_request(error)
    decision = _admit_write(nickname)

    post_id, error = clean_post_id(body.get("post_id"))
    if error:
        return _bad_request(error)
    content, error = clean_content(body.get("content"), current_app.config["MAX_COMMENT_LEN"])
    if error:
        return _bad_request(error)
    guard.enforce_clean_text(content, actor=nickname)

    comment = guard.store.create_comment(post_id, nickname, content)
    guard.invalidate_after_write(nickname)
    return jsonify({"success": True, "comment": comment, "remaining": decision.remaining}), 200


def _build_profile(nickname: str) -> Optional[Dict[str, Any]]:
    store = get_guard().store
    user = store.get_user(nickname)
    if not user:
        return None
    return {
        "nickname": nickname,
        "created_at": user.get("created_at"),
        "posts": store.count_posts(nickname),
        "comments": store.count_comments(nickname),
        "recent_posts": store.list_posts_by(nickname),
    }


@api_bp.route("/profile/<nick>", methods=["GET"])
def profile(nick: str):
    nickname = nick.strip().lower()
    profile_data = get_guard().author_cache().get_or_compute(
        nickname, lambda: _build_profile(nickname)
    )
    if profile_data is None:
        return jsonify({"success": False, "error": "not_found"}), 404
    return jsonify(profile_data), 200


@api_bp.route("/keys", methods=["POST"])
def issue_key():
    """
    Issue an API key for an existing nickname.

    Request body (JSON):
        {"nickname": "alice", "label": "my bot"}
    """
    guard = get_guard()
    body = json_body(request.get_json(silent=True))

    nickname, error = _nickname_from(body)
    if error:
        return _bad_request(error)
    guard.enforce_rate("auth", nickname)
    guard.enforce_not_banned(nickname, write=True)

    if not guard.store.get_user(nickname):
        return jsonify({"success": False, "error": "not_found"}), 404

    label, error = clean_content(body.get("label") or "default", 40)
    if error:
        return _bad_request(error)
    guard.enforce_clean_text(label, actor=nickname)

    key = guard.register_credential(nickname, label)
    return jsonify({"success": True, "key": key, "label": label}), 201


@api_bp.route("/keys/<key>", methods=["DELETE"])
def revoke_key(key: str):
    guard = get_guard()
    nickname, error = _nickname_from(json_body(request.get_json(silent=True)))
    if error:
        return _bad_request(error)
    guard.enforce_rate("auth", nickname)

    guard.revoke_credential(key, nickname)
    return jsonify({"success": True}), 200


@api_bp.route("/v1/posts", methods=["GET"])
def api_list_posts():
    key = request.headers.get(API_KEY_HEADER, "").strip()
    if not key:
        raise InvalidCredential("API key required.")

    decision = get_guard().enforce_quota(key)
    resp = jsonify(_feed_page(_offset()))
    resp.headers["X-Quota-Remaining"] = str(decision.remaining)
    return resp, 200
