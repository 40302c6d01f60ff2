"""
Admin routes for ban management.

All routes require the admin password (see utils.auth.require_admin).
"""

from __future__ import annotations
from flask import Blueprint, current_app, jsonify, request

from postboard.extensions import get_guard
from postboard.utils.auth import require_admin
from postboard.utils.validation import clean_content, clean_nickname, json_body

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.route("/bans", methods=["POST"])
@require_admin
def create_ban():
    """
    Ban a nickname.

    Request body (JSON):
        {
            "nickname": "spammer",
            "reason": "spam",
            "duration_seconds": 86400   # optional; omit for a permanent ban
        }
    """
    body = json_body(request.get_json(silent=True))
    nickname, error = clean_nickname(body.get("nickname"), current_app.config["MAX_NICKNAME_LEN"])
    if error:
        return jsonify({"success": False, "error": "invalid", "message": error}), 400

    reason, error = clean_content(body.get("reason") or "unspecified", 200)
    if error:
        return jsonify({"success": False, "error": "invalid", "message": error}), 400

    duration = body.get("duration_seconds")
    if duration is not None:
        if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration <= 0:
            return jsonify({
                "success": False,
                "error": "invalid",
                "message": "duration_seconds must be a positive number",
            }), 400

    guard = get_guard()
    ban = guard.bans.ban(nickname, reason, duration)
    guard.cache_evict_if_present("author", nickname)
    return jsonify({"success": True, "ban": ban.to_dict()}), 201


@admin_bp.route("/bans/<nickname>", methods=["GET"])
@require_admin
def get_ban(nickname: str):
    guard = get_guard()
    ban = guard.check_ban(nickname.strip().lower())
    if ban is None:
        return jsonify({"success": True, "banned": False}), 200
    return jsonify({
        "success": True,
        "banned": True,
        "ban": ban.to_dict(),
        "remaining": "permanent" if ban.permanent else int(ban.remaining(guard.clock())),
    }), 200


@admin_bp.route("/bans/<nickname>", methods=["DELETE"])
@require_admin
def delete_ban(nickname: str):
    get_guard().bans.unban(nickname.strip().lower())
    return jsonify({"success": True}), 200
