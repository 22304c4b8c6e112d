import os
import sys
import threading

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autopick.errors import CaptureError
from autopick.models import CaptureResult, ClickPoint, Rect, Settings, TextBlock
from autopick.state import CancelToken, RunState

SCREEN = (1080, 2340)


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeToken(CancelToken):
    """Sleeps instantly on a FakeClock; optionally cancels on the Nth sleep."""
    def __init__(self, clock, cancel_after=None):
        super().__init__()
        self.clock = clock
        self.cancel_after = cancel_after
        self.sleeps = []

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        if self.cancel_after is not None and len(self.sleeps) >= self.cancel_after:
            self.cancel()
        self.check()
        self.clock.advance(seconds)


class FakeReader:
    """Plays back scripted captures; the last one repeats. Exceptions are raised."""
    def __init__(self, *results):
        self.results = list(results) or [CaptureResult.empty()]
        self.rects = []
        self.available = True
        self.resets = 0
        self.closes = 0

    def capture(self, rect):
        self.rects.append(rect)
        item = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(item, Exception):
            raise item
        return item

    def is_available(self):
        return self.available

    def describe(self):
        return "scripted captures"

    def reset(self):
        self.resets += 1

    def close(self):
        self.closes += 1


class FakeActuator:
    def __init__(self, size=SCREEN, scroll_ok=True, tap_ok=True):
        self.size = size
        self.scroll_ok = scroll_ok
        self.tap_ok = tap_ok
        self.scrolls = []
        self.taps = []
        self.scrolled = threading.Event()

    def screen_size(self):
        return self.size

    def is_available(self):
        return True

    def scroll(self, direction, width, height):
        self.scrolls.append((direction, width, height))
        self.scrolled.set()
        return self.scroll_ok

    def tap(self, x, y):
        self.taps.append((x, y))
        return self.tap_ok


def capture_of(*items):
    """capture_of(("CLAIM", (90, 190, 110, 210)), ...) -> CaptureResult"""
    return CaptureResult.from_blocks(TextBlock(text, Rect(*box)) for text, box in items)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reward_settings():
    return Settings(
        scroll_condition="LOAD",
        click_condition="CLAIM",
        scroll_check_delay=1.0,
        click_check_delay=0.5,
        click_timeout=2.0,
        click_point=ClickPoint(100, 200),
        search_radius=50,
    )


@pytest.fixture
def running_state(reward_settings):
    return RunState(reward_settings, running=True)


@pytest.fixture
def load_claim():
    return CaptureResult("LOAD\nCLAIM", (TextBlock("CLAIM", Rect(90, 190, 110, 210)),))


@pytest.fixture
def load_only():
    return capture_of(("LOAD", (60, 160, 140, 180)))


@pytest.fixture
def capture_error():
    return CaptureError("reader offline")
