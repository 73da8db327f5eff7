"""Process-local auto-merge cooldown cache and its periodic sweeper."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import TYPE_CHECKING, Final

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from identigraph.config.identity import DEFAULT_COOLDOWN_SECONDS, DEFAULT_COOLDOWN_SWEEP_SECONDS
from identigraph.domain.model import utcnow
from identigraph.domain.ports import pair_key

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from identigraph.domain.ports import CooldownCache

log = logging.getLogger(__name__)

SWEEP_JOB_ID: Final[str] = "auto_merge_cooldown_sweep"


class InMemoryCooldownCache:
    """TTL map of contact pairs, safe to share between threads of one process."""

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._expires_at: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._expires_at)

    def is_on_cooldown(self, a: UUID, b: UUID) -> bool:
        key = pair_key(a, b)
        now = self._clock()
        with self._lock:
            expires_at = self._expires_at.get(key)
            if expires_at is None:
                return False
            if expires_at <= now:
                del self._expires_at[key]
                return False
            return True

    def set_cooldown(self, a: UUID, b: UUID) -> None:
        key = pair_key(a, b)
        with self._lock:
            self._expires_at[key] = self._clock() + self._ttl
        log.debug("Cooldown set for %s", key)

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, expires_at in self._expires_at.items() if expires_at <= now]
            for key in expired:
                del self._expires_at[key]
        return len(expired)


class CooldownSweeper:
    """Runs ``cache.sweep()`` on a background APScheduler interval job."""

    def __init__(
        self,
        cache: CooldownCache,
        *,
        interval_seconds: float = DEFAULT_COOLDOWN_SWEEP_SECONDS,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self._cache = cache
        self._interval_seconds = interval_seconds
        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        self._scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=SWEEP_JOB_ID,
            name="Auto-merge cooldown sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        log.info("Cooldown sweep scheduled every %.0fs", self._interval_seconds)

    def run_once(self) -> int:
        removed = self._cache.sweep()
        if removed:
            log.debug("Cooldown sweep dropped %s expired pairs", removed)
        return removed

    def shutdown(self, *, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            log.info("Cooldown sweep stopped")
