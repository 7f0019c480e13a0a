# tickerdeck/hotkeys/scheduler.py
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional, Protocol, Tuple

from tickerdeck.hotkeys.models import TimerDomain

log = logging.getLogger("tickerdeck.scheduler")

TimerCallback = Callable[[], None]


class DebounceScheduler(Protocol):
    """
    Single-flight timers keyed by domain.
    Scheduling a domain replaces whatever was pending for it.
    """

    def schedule(self, domain: TimerDomain, delay_ms: int, callback: TimerCallback) -> None: ...

    def cancel(self, domain: TimerDomain) -> None: ...

    def pending(self, domain: TimerDomain) -> bool: ...

    def cancel_all(self) -> None: ...


class ManualScheduler:
    """
    Fake clock. Nothing fires until advance() moves time past a due timer.
    Timers due at the same instant fire in the order they were scheduled.
    """

    def __init__(self, now_ms: int = 0):
        self.now_ms = int(now_ms)
        self._seq = 0
        self._timers: Dict[TimerDomain, Tuple[int, int, TimerCallback]] = {}

    def schedule(self, domain: TimerDomain, delay_ms: int, callback: TimerCallback) -> None:
        self._seq += 1
        self._timers[domain] = (self.now_ms + max(0, int(delay_ms)), self._seq, callback)

    def cancel(self, domain: TimerDomain) -> None:
        self._timers.pop(domain, None)

    def pending(self, domain: TimerDomain) -> bool:
        return domain in self._timers

    def cancel_all(self) -> None:
        self._timers.clear()

    def due_at(self, domain: TimerDomain) -> Optional[int]:
        entry = self._timers.get(domain)
        return entry[0] if entry else None

    def advance(self, ms: int) -> None:
        target = self.now_ms + int(ms)
        while True:
            due = [(when, seq, d) for d, (when, seq, _) in self._timers.items() if when <= target]
            if not due:
                break
            when, _, domain = min(due)
            _, _, callback = self._timers.pop(domain)
            self.now_ms = when
            callback()
        self.now_ms = target


class AsyncioScheduler:
    """Timers on the host's asyncio event loop (loop.call_later)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[TimerDomain, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, domain: TimerDomain, delay_ms: int, callback: TimerCallback) -> None:
        self.cancel(domain)
        self._handles[domain] = self._get_loop().call_later(
            max(0, int(delay_ms)) / 1000.0, self._fire, domain, callback
        )

    def _fire(self, domain: TimerDomain, callback: TimerCallback) -> None:
        self._handles.pop(domain, None)
        log.debug("timer fired domain=%s", domain.value)
        callback()

    def cancel(self, domain: TimerDomain) -> None:
        handle = self._handles.pop(domain, None)
        if handle is not None:
            handle.cancel()

    def pending(self, domain: TimerDomain) -> bool:
        return domain in self._handles

    def cancel_all(self) -> None:
        for domain in list(self._handles):
            self.cancel(domain)
