"""On-disk cache for session keys and auth tickets.

REST probes log in once and reuse the session key across invocations while
it is fresh. Entries live in one small JSON file per key; an expired entry
and a missing entry are the same thing to callers.
"""

import hashlib
import json
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TTL = 3600


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def cache_key(*parts: object) -> str:
    """Stable key for a host/port/credential combination.

    The parts are hashed so no credential ends up in a file name.
    """
    digest = hashlib.sha256()
    for part in parts:
        digest.update(str(part).encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


@dataclass(frozen=True)
class CachedTicket:
    """A cached token and when it was obtained (UTC)."""

    token: str
    issued_at: datetime

    def is_fresh(self, ttl: int, now: datetime) -> bool:
        return now - self.issued_at < timedelta(seconds=ttl)


class TicketCache:
    """File-backed ticket cache with atomic writes.

    Example:
        >>> cache = TicketCache("/var/tmp", ttl=1500)
        >>> key = cache_key("msa01", 443, "monitor", "secret")
        >>> ticket = cache.get(key) or cache.put(key, login())
    """

    PREFIX = "device-probes-"

    def __init__(
        self,
        cache_dir: str,
        ttl: int = DEFAULT_TTL,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Directory holding the cache files.
            ttl: Freshness window in seconds.
            now: Clock returning an aware UTC datetime.
        """
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self._now = now

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{self.PREFIX}{key}.json"

    def get(self, key: str) -> Optional[CachedTicket]:
        """Return the cached ticket, or None when absent, expired or unreadable."""
        path = self._path(key)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            issued_at = datetime.fromisoformat(data["issued_at"])
            ticket = CachedTicket(token=str(data["token"]), issued_at=issued_at)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("ticket_cache_unreadable", path=str(path), error=str(e))
            return None

        if issued_at.tzinfo is None or not ticket.is_fresh(self.ttl, self._now()):
            logger.debug("ticket_expired", path=str(path), issued_at=data["issued_at"])
            return None

        logger.debug("ticket_cache_hit", path=str(path))
        return ticket

    def put(self, key: str, token: str) -> CachedTicket:
        """Store ``token`` under ``key`` issued now.

        Uses temp file + rename so concurrent probe runs never read a
        partial file. The temp file is created with mode 0600.
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        ticket = CachedTicket(token=token, issued_at=self._now())
        content = json.dumps(
            {"token": ticket.token, "issued_at": ticket.issued_at.isoformat()}
        )

        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.cache_dir,
            prefix=".tmp-ticket-",
            suffix=".json",
        )
        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            shutil.move(temp_path, self._path(key))
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

        logger.debug("ticket_cached", path=str(self._path(key)), ttl=self.ttl)
        return ticket

    def invalidate(self, key: str) -> None:
        """Forget the ticket stored under ``key``."""
        self._path(key).unlink(missing_ok=True)
        logger.debug("ticket_invalidated", path=str(self._path(key)))
