"""
Input validation for JSON request bodies.

Trims and bounds field lengths and strips control characters. Each helper
returns (value, error_message); error_message is None on success.
"""

from __future__ import annotations
import re
from typing import Any, Mapping, Optional, Tuple

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_NICKNAME_PATTERN = re.compile(r"^[a-z0-9_.\-]+$")

REACTION_VALUES = (1, -1)


def clean_nickname(value: Any, max_len: int) -> Tuple[str, Optional[str]]:
    """Nicknames are trimmed and lowercased; 1..max_len of [a-z0-9_.-]."""
    if not isinstance(value, str):
        return "", "Nickname is required."
    nick = value.strip().lower()
    if not nick:
        return "", "Nickname is required."
    if len(nick) > max_len:
        return "", f"Nickname must be at most {max_len} characters."
    if not _NICKNAME_PATTERN.match(nick):
        return "", "Nickname may only contain letters, digits, '_', '-' and '.'."
    return nick, None


def clean_content(value: Any, max_len: int) -> Tuple[str, Optional[str]]:
    """Post/comment text: control characters removed, 1..max_len after trimming."""
    if not isinstance(value, str):
        return "", "Content is required."
    text = _CONTROL_CHARS.sub("", value).strip()
    if not text:
        return "", "Content is required."
    if len(text) > max_len:
        return "", f"Content must be at most {max_len} characters."
    return text, None


def clean_post_id(value: Any) -> Tuple[int, Optional[str]]:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return 0, "post_id must be a positive integer."
    return value, None


def clean_reaction(value: Any) -> Tuple[int, Optional[str]]:
    if isinstance(value, bool) or value not in REACTION_VALUES:
        return 0, "value must be 1 or -1."
    return value, None


def json_body(data: Any) -> Mapping[str, Any]:
    """Treat anything that is not a JSON object as an empty body."""
    return data if isinstance(data, Mapping) else {}
