from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

IST = ZoneInfo("Asia/Kolkata")


def today_ist(now: datetime | None = None) -> str:
    dt = now or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(IST).date().isoformat()


def mask_token(token: str) -> str:
    if not token:
        return ""
    if len(token) <= 8:
        return token[:2] + "..." + token[-2:]
    return token[:4] + "..." + token[-4:]


@dataclass(frozen=True)
class KiteSession:
    access_token: str
    user_id: str | None = None
    user_name: str | None = None
    # Kite access tokens expire daily; the IST day they were issued on
    day: str = ""


class SessionBackend(Protocol):
    def load(self, today: str | None = None) -> Optional[KiteSession]: ...

    def save(self, session: KiteSession) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStore:
    def __init__(self, session: KiteSession | None = None) -> None:
        self._session = session

    def load(self, today: str | None = None) -> Optional[KiteSession]:
        s = self._session
        if s is None or s.day != (today or today_ist()):
            return None
        return s

    def save(self, session: KiteSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class SessionStore:
    """Kite session persisted as a small JSON file, valid for one IST day."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self, today: str | None = None) -> Optional[KiteSession]:
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            session = KiteSession(
                access_token=str(raw["access_token"]),
                user_id=raw.get("user_id"),
                user_name=raw.get("user_name"),
                day=str(raw.get("day", "")),
            )
        except (OSError, ValueError, KeyError, TypeError):
            logger.warning("session_file_unreadable %s", self.path)
            return None
        if not session.access_token or session.day != (today or today_ist()):
            logger.info("session_expired day=%s", session.day)
            return None
        return session

    def save(self, session: KiteSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(asdict(session), indent=2), encoding="utf-8")
        tmp.replace(self.path)
        logger.info("session_saved user=%s token=%s", session.user_id, mask_token(session.access_token))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
