"""Debounced geocoding for search-as-you-type inputs."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from .geocode import NominatimGeocoder
from .models import Lookup

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


class DebouncedGeocoder:
    """Coalesce rapid successive inputs into one request.

    Each instance owns its pending timer, so several search widgets can each
    debounce independently while still sharing the geocoder's throttle.
    Only the last value submitted within ``delay`` seconds reaches the
    network; earlier ones are cancelled rather than queued.
    """

    def __init__(
        self,
        geocoder: NominatimGeocoder,
        callback: Callable[[str, Lookup], None],
        delay: Optional[float] = None,
        lookup: Optional[Callable[[str], Lookup]] = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.geocoder = geocoder
        self.callback = callback
        self.delay = geocoder.settings.debounce_seconds if delay is None else delay
        self._lookup = lookup or geocoder.geocode
        self._timer_factory = timer_factory
        self._timer: Optional[Any] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def submit(self, text: str) -> None:
        """Schedule a lookup of ``text``, cancelling any earlier pending one."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.delay, lambda: self._fire(timer, text))
            self._timer = timer
        if hasattr(timer, "daemon"):
            timer.daemon = True
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self, timer: Any, text: str) -> None:
        with self._lock:
            if self._timer is not timer:
                return
            self._timer = None
        logger.debug("Debounce elapsed, looking up %r", text)
        self.callback(text, self._lookup(text))
