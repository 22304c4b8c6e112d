import time
import traceback
from collections import Counter

from colorama import Fore

from . import config
from .config import print
from .clicker import ClickRetryController
from .diagnostics import run_diagnostics
from .errors import Cancelled, ConfigurationMissing, DispatchFailure
from .models import ClickOutcome, CycleOutcome
from .perception import RegionCapture


# --- SCROLL / CAPTURE / CLICK LOOP ---
class CycleEngine:
    """Scroll, read the search area, and hand off to the click checker.

    One instance is driven by exactly one thread at a time. The loop ends when
    the run flag drops or the token is cancelled; any other failure only costs
    the current cycle.
    """
    def __init__(self, reader, actuator, run_state, clock=time.monotonic):
        self.reader = reader
        self.actuator = actuator
        self.run_state = run_state
        self.region_capture = RegionCapture(reader)
        self.clicker = ClickRetryController(self.region_capture, actuator, run_state, clock=clock)
        self.cycle_count = 0
        self.outcome_counts = Counter()
        self.last_report = None

    def run(self, token) -> CycleOutcome:
        print(f"{Fore.YELLOW}[*] Process loop launched with settings: {self.run_state.settings}")
        self.last_report = run_diagnostics(self.reader, self.actuator, self.run_state)
        try:
            while self.run_state.running and not token.cancelled:
                self.cycle_count += 1
                if self.cycle_count % config.DIAGNOSTIC_INTERVAL == 0:
                    self.last_report = run_diagnostics(self.reader, self.actuator, self.run_state)
                self._record(self._guarded_cycle(token))
        except Cancelled:
            print(f"{Fore.YELLOW}[*] Process loop was cancelled, exiting gracefully")
        finally:
            tally = ", ".join(f"{o.value}={n}" for o, n in self.outcome_counts.items())
            print(f"{Fore.YELLOW}[*] Process loop has ended after {self.cycle_count} cycles ({tally})")
        self._record(CycleOutcome.CANCELLED)
        return CycleOutcome.CANCELLED

    def _record(self, outcome: CycleOutcome):
        self.outcome_counts[outcome] += 1

    def _guarded_cycle(self, token) -> CycleOutcome:
        try:
            return self.run_cycle(token)
        except Cancelled:
            raise
        except Exception as e:
            print(f"{Fore.RED}[!] Error in cycle #{self.cycle_count}: {type(e).__name__}: {e}")
            if config.DEBUG_LOOP:
                traceback.print_exc()
            token.sleep(config.ERROR_BACKOFF)
            return CycleOutcome.CAPTURE_FAILED

    def run_cycle(self, token) -> CycleOutcome:
        """One scroll -> settle -> capture -> decide pass."""
        token.check()
        if config.DEBUG_LOOP:
            print(f"[DEBUG] ===== Starting cycle #{self.cycle_count} =====")

        try:
            settings = self.run_state.require_settings()
        except ConfigurationMissing:
            print(f"{Fore.RED}[!] Cycle #{self.cycle_count}: Settings are missing, skipping cycle")
            token.sleep(config.SETTINGS_BACKOFF)
            return CycleOutcome.SETTINGS_UNAVAILABLE

        screen_size = self.actuator.screen_size()
        self._scroll(settings.scroll_direction, *screen_size)

        # Let the surface settle before reading it
        token.sleep(settings.scroll_check_delay)

        click_point = settings.click_point
        if click_point is None:
            print(f"{Fore.YELLOW}[!] No click point defined, skipping remaining steps")
            return CycleOutcome.NO_CLICK_POINT

        result = self.region_capture.capture(click_point, settings.search_radius, screen_size)
        if config.DEBUG_LOOP:
            preview = result.text[:100].replace("\n", " | ")
            print(f"[DEBUG] Text recognized: {preview}{'...' if len(result.text) > 100 else ''}")

        if settings.scroll_condition not in result.text:
            if config.DEBUG_LOOP:
                print(f"[DEBUG] Scroll condition '{settings.scroll_condition}' NOT met, next cycle")
            return CycleOutcome.SCROLL_CONDITION_NOT_MET

        print(f"{Fore.GREEN}[+] Cycle #{self.cycle_count}: scroll condition '{settings.scroll_condition}' MET")
        outcome = self.clicker.run(settings, result, screen_size, token)
        if outcome is ClickOutcome.CANCELLED:
            token.check()
            return CycleOutcome.CANCELLED

        token.sleep(settings.click_check_delay)
        if outcome is ClickOutcome.MATCHED:
            return CycleOutcome.CLICK_MATCHED
        return CycleOutcome.CLICK_TIMED_OUT

    def _scroll(self, direction, width, height):
        try:
            if not self.actuator.scroll(direction, width, height):
                raise DispatchFailure(f"scroll {direction.value} was not accepted")
        except DispatchFailure as e:
            # A missed scroll just means the same screen gets read again
            print(f"{Fore.YELLOW}[!] Failed to dispatch scroll gesture: {e}")
