import threading
from typing import Optional

from .errors import Cancelled, ConfigurationMissing
from .models import Settings


class RunState:
    """Run flag plus the current settings snapshot.

    Written by the controller thread, read by the engine thread. Settings are
    swapped as a whole under the lock, so a reader never sees half an update.
    """
    def __init__(self, settings: Optional[Settings] = None, running: bool = False):
        self._lock = threading.Lock()
        self._settings = settings
        self._running = running

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @running.setter
    def running(self, value: bool):
        with self._lock:
            self._running = bool(value)

    @property
    def settings(self) -> Optional[Settings]:
        with self._lock:
            return self._settings

    def update_settings(self, settings: Settings):
        with self._lock:
            self._settings = settings

    def require_settings(self) -> Settings:
        settings = self.settings
        if settings is None:
            raise ConfigurationMissing("No settings supplied yet")
        return settings

    def swap_running(self, value: bool) -> bool:
        """Set the run flag and return what it was, in one step."""
        with self._lock:
            previous, self._running = self._running, bool(value)
            return previous


class CancelToken:
    """Cancellation signal handed to every wait inside one run."""
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self):
        if self._event.is_set():
            raise Cancelled()

    def sleep(self, seconds: float):
        """Wait up to `seconds`; raise Cancelled the moment the token fires."""
        if self._event.wait(max(0.0, seconds)):
            raise Cancelled()
