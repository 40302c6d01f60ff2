"""Records exchanged between the guard layer and the store."""

from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

PERMANENT = -1


@dataclass
class Ban:
    nickname: str
    reason: str
    banned_until: float  # epoch seconds, or PERMANENT
    banned_at: float

    @property
    def permanent(self) -> bool:
        return self.banned_until == PERMANENT

    def expired(self, now: float) -> bool:
        return not self.permanent and self.banned_until <= now

    def remaining(self, now: float) -> Optional[float]:
        """Seconds left on the ban, or None when permanent."""
        if self.permanent:
            return None
        return max(0.0, self.banned_until - now)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "Ban":
        return cls(
            nickname=row["nickname"],
            reason=row.get("reason") or "",
            banned_until=float(row["banned_until"]),
            banned_at=float(row.get("banned_at") or 0),
        )


@dataclass
class ApiKeyQuota:
    key: str
    owner: str
    label: str = ""
    requests_today: int = 0
    last_reset: float = 0.0
    last_used: Optional[float] = None
    created_at: float = 0.0
    revoked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "ApiKeyQuota":
        last_used = row.get("last_used")
        return cls(
            key=row["key"],
            owner=row["owner"],
            label=row.get("label") or "",
            requests_today=int(row.get("requests_today") or 0),
            last_reset=float(row.get("last_reset") or 0),
            last_used=float(last_used) if last_used is not None else None,
            created_at=float(row.get("created_at") or 0),
            revoked=bool(row.get("revoked", False)),
        )
