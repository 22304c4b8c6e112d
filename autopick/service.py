import threading
import time
import traceback

from colorama import Fore

from . import config
from .config import print
from .engine import CycleEngine
from .state import CancelToken, RunState


class EngineThread(threading.Thread):
    """Daemon thread running one CycleEngine until its token is cancelled."""
    def __init__(self, engine, token):
        super().__init__(daemon=True, name="autopick-engine")
        self.engine = engine
        self.token = token
        self.outcome = None

    def run(self):
        try:
            self.outcome = self.engine.run(self.token)
        except Exception as e:
            # run() already contains per-cycle failures; this is a last resort
            print(f"{Fore.RED}[!] Fatal error in process loop: {e}")
            traceback.print_exc()
        finally:
            try:
                self.engine.reader.close()
            except Exception as e:
                print(f"{Fore.RED}[!] Error releasing reader: {e}")


class AutoScrollService:
    """Lifecycle surface for the scroll/click loop.

    start/stop/update_settings/restart_capability may be called from any
    thread at any time.
    """
    def __init__(self, reader, actuator, run_state=None, clock=time.monotonic,
                 stop_timeout=None, restart_pause=None):
        self.reader = reader
        self.actuator = actuator
        self.run_state = run_state if run_state is not None else RunState()
        self.clock = clock
        self.stop_timeout = config.STOP_JOIN_TIMEOUT if stop_timeout is None else stop_timeout
        self.restart_pause = config.RESTART_PAUSE if restart_pause is None else restart_pause
        self.engine = None
        self._lock = threading.RLock()
        self._thread = None
        self._token = None
        self._lingering = []  # Threads stop() gave up waiting on
        self._generation = 0  # Bumped by start()/stop(); stale relaunches back off
        self._restore_timer = None
        self._restore_value = None

    @property
    def is_running(self) -> bool:
        return self.run_state.running

    @property
    def thread(self):
        return self._thread

    def update_settings(self, settings):
        self.run_state.update_settings(settings)
        print(f"{Fore.CYAN}[*] Settings updated: {settings}")

    def start(self):
        """Start the loop, cancelling and fully joining any previous run first."""
        with self._lock:
            print(f"{Fore.CYAN}[*] start called, setting running to True")
            self._cancel_restore()
            self._generation += 1
            generation = self._generation
        self._relaunch(generation)

    def stop(self):
        """Stop the loop. Safe to call repeatedly; waits at most stop_timeout."""
        with self._lock:
            self._cancel_restore()
            self._generation += 1
            self.run_state.running = False
            if self._thread is None:
                return
            print(f"{Fore.CYAN}[*] stop called, setting running to False and cancelling the loop")
            self._halt(wait=self.stop_timeout)

    def restart_capability(self):
        """Soft restart: reset the reader and pause the loop briefly.

        The run flag goes back to what it was before the first of any
        overlapping restarts once the pause is over.
        """
        with self._lock:
            print(f"{Fore.YELLOW}[*] Refreshing text capability after persistent failures")
            try:
                self.reader.reset()
            except Exception as e:
                print(f"{Fore.RED}[!] Error resetting reader: {e}")

            if self._restore_timer is not None:
                self._restore_timer.cancel()
                previous = self._restore_value
                self.run_state.running = False
            else:
                previous = self.run_state.swap_running(False)
            self._restore_value = previous

            timer = threading.Timer(self.restart_pause, self._restore, args=(previous,))
            timer.daemon = True
            self._restore_timer = timer
            timer.start()

    def _restore(self, previous):
        with self._lock:
            if threading.current_thread() is not self._restore_timer:
                return
            self._restore_timer = None
            self._restore_value = None
            self.run_state.running = previous
            print(f"{Fore.CYAN}[*] Capability refresh completed. running restored to: {previous}")
            if not previous:
                return
            generation = self._generation
        # The paused run may still be winding down; replace it with a fresh one
        self._relaunch(generation)

    def shutdown(self):
        """Stop the loop and release the reader."""
        self.stop()
        try:
            self.reader.close()
        except Exception as e:
            print(f"{Fore.RED}[!] Error releasing reader: {e}")

    def _relaunch(self, generation):
        """Retire the current run, join every old thread, then launch.

        The join happens outside the lock so stop() stays bounded while an old
        run is stuck. Nothing is launched if a later start() or stop() took over
        in the meantime.
        """
        with self._lock:
            if generation != self._generation:
                return
            self._retire()
            previous = list(self._lingering)

        for thread in previous:
            thread.join()

        with self._lock:
            self._lingering = [t for t in self._lingering if t.is_alive()]
            if generation != self._generation:
                return
            self.run_state.running = True
            self._launch()

    def _launch(self):
        self._token = CancelToken()
        self.engine = CycleEngine(self.reader, self.actuator, self.run_state, clock=self.clock)
        self._thread = EngineThread(self.engine, self._token)
        self._thread.start()

    def _retire(self):
        """Cancel the current run and move its thread to the lingering list."""
        if self._token is not None:
            self._token.cancel()
        if self._thread is not None:
            self._lingering.append(self._thread)
        self._thread = None
        self._token = None

    def _halt(self, wait):
        """Cancel the current run and join old threads for at most `wait` each."""
        self._retire()
        still_alive = []
        for thread in self._lingering:
            thread.join(wait)
            if thread.is_alive():
                still_alive.append(thread)
        if still_alive:
            print(f"{Fore.YELLOW}[!] Loop did not end within {wait}s; handle discarded")
        self._lingering = still_alive

    def _cancel_restore(self):
        if self._restore_timer is not None:
            self._restore_timer.cancel()
        self._restore_timer = None
        self._restore_value = None
