import time
import traceback

from colorama import Fore

from . import config
from .config import print
from .errors import Cancelled, DispatchFailure
from .locator import locate_text
from .models import CaptureResult, ClickOutcome, LocateStatus, Settings


class ClickRetryController:
    """Keeps checking for the click condition once the scroll condition is met.

    The first check reuses the caller's capture. After that it sleeps
    `click_check_delay`, captures again and checks again, until the condition
    shows up or `click_timeout` has elapsed.
    """
    def __init__(self, region_capture, actuator, run_state, clock=time.monotonic):
        self.region_capture = region_capture
        self.actuator = actuator
        self.run_state = run_state
        self.clock = clock
        self.retry_count = 0

    def run(self, settings: Settings, initial: CaptureResult, screen_size, token) -> ClickOutcome:
        self.retry_count = 0
        condition = settings.click_condition
        print(f"{Fore.CYAN}[*] Checking click condition: '{condition}'")

        if condition in initial.text:
            print(f"{Fore.GREEN}[+] Click condition MET on first check, performing click")
            self._click(settings, initial)
            return ClickOutcome.MATCHED

        start = self.clock()
        print(f"{Fore.YELLOW}[*] Click condition not met yet, retrying for up to {settings.click_timeout}s")

        while self.run_state.running and self.clock() - start < settings.click_timeout:
            self.retry_count += 1
            try:
                token.sleep(settings.click_check_delay)
            except Cancelled:
                print(f"{Fore.YELLOW}[*] Cancelled during click check retry delay")
                return ClickOutcome.CANCELLED

            try:
                result = self.region_capture.capture(settings.click_point, settings.search_radius, screen_size)
                if condition in result.text:
                    print(f"{Fore.GREEN}[+] Click condition MET on retry #{self.retry_count}, performing click")
                    self._click(settings, result)
                    return ClickOutcome.MATCHED
            except Cancelled:
                return ClickOutcome.CANCELLED
            except Exception as e:
                print(f"{Fore.RED}[!] Error during click retry #{self.retry_count}: {e}")
                if config.DEBUG_LOOP:
                    traceback.print_exc()

            if config.DEBUG_LOOP:
                elapsed = self.clock() - start
                print(f"[DEBUG] Retry #{self.retry_count}: {elapsed:.1f}s elapsed, {settings.click_timeout - elapsed:.1f}s left")

        if token.cancelled or not self.run_state.running:
            return ClickOutcome.CANCELLED
        print(f"{Fore.YELLOW}[!] Timeout reached after {self.retry_count} retries, '{condition}' never appeared")
        return ClickOutcome.TIMED_OUT

    def _click(self, settings: Settings, result: CaptureResult):
        located = locate_text(result, settings.click_condition)
        if located.status is LocateStatus.FOUND:
            x, y = located.point
            print(f"{Fore.CYAN}[*] Using matched text position for click: x={x}, y={y}")
        elif settings.click_point is None:
            print(f"{Fore.RED}[!] No text position and no click point defined, nothing to click")
            return
        else:
            x, y = settings.click_point.x, settings.click_point.y
            print(f"{Fore.CYAN}[*] No exact text position found, using predefined click point: x={x}, y={y}")

        try:
            if not self.actuator.tap(x, y):
                raise DispatchFailure(f"tap at ({x}, {y}) was not accepted")
            print(f"{Fore.GREEN}[+] Click gesture dispatched at [ x={x} , y={y} ]")
        except DispatchFailure as e:
            print(f"{Fore.RED}[!] Failed to dispatch click gesture: {e}")
