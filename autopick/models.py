"""Data models shared by the engine, the readers and the actuators."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from . import config
from .errors import SettingsError


class ScrollDirection(Enum):
    UP = "up"
    DOWN = "down"

    def swipe_path(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """Return the (x1, y1, x2, y2) stroke for one scroll along the horizontal midline."""
        x = round(width / 2)
        if self is ScrollDirection.DOWN:
            start_y, end_y = height * 0.9, height * 0.2
        else:
            start_y, end_y = height * 0.2, height * 0.8
        return x, round(start_y), x, round(end_y)


@dataclass(frozen=True)
class ClickPoint:
    x: float
    y: float

    @classmethod
    def parse(cls, raw: str) -> "ClickPoint":
        """Parse 'X,Y' as typed on the command line."""
        try:
            x, y = (float(part.strip()) for part in raw.split(","))
        except ValueError:
            raise SettingsError(f"Click point must look like 'X,Y', got '{raw}'")
        return cls(x, y)


@dataclass(frozen=True)
class Rect:
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def center(self) -> Tuple[int, int]:
        return (self.left + self.right) // 2, (self.top + self.bottom) // 2

    def intersects(self, other: "Rect") -> bool:
        # Rectangles that only share an edge do not intersect
        return (self.left < other.right and other.left < self.right and
                self.top < other.bottom and other.top < self.bottom)


@dataclass(frozen=True)
class TextBlock:
    """A piece of on-screen text and the box it was read from."""
    text: str
    bounds: Rect

    def center(self) -> Tuple[int, int]:
        return self.bounds.center()


@dataclass(frozen=True)
class CaptureResult:
    text: str = ""
    blocks: Tuple[TextBlock, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "CaptureResult":
        return cls()

    @classmethod
    def from_blocks(cls, blocks) -> "CaptureResult":
        """Build the combined text as every block's text followed by a newline."""
        blocks = tuple(blocks)
        return cls("".join(f"{b.text}\n" for b in blocks), blocks)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.blocks


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of what the loop should look for and how fast."""
    scroll_condition: str = ""
    click_condition: str = ""
    scroll_check_delay: float = config.SCROLL_CHECK_DELAY
    click_check_delay: float = config.CLICK_CHECK_DELAY
    click_timeout: float = config.CLICK_TIMEOUT
    scroll_direction: ScrollDirection = ScrollDirection.DOWN
    search_radius: int = config.SEARCH_RADIUS
    click_point: Optional[ClickPoint] = None

    def validate(self) -> "Settings":
        if self.search_radius <= 0:
            raise SettingsError(f"Search radius must be positive, got {self.search_radius}")
        for name in ("scroll_check_delay", "click_check_delay", "click_timeout"):
            if getattr(self, name) < 0:
                raise SettingsError(f"{name} cannot be negative")
        return self


class CycleOutcome(Enum):
    SCROLL_CONDITION_NOT_MET = "scroll_condition_not_met"
    CLICK_MATCHED = "click_matched"
    CLICK_TIMED_OUT = "click_timed_out"
    SETTINGS_UNAVAILABLE = "settings_unavailable"
    CAPTURE_FAILED = "capture_failed"
    NO_CLICK_POINT = "no_click_point"
    CANCELLED = "cancelled"


class ClickOutcome(Enum):
    MATCHED = "matched"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class LocateStatus(Enum):
    FOUND = "found"
    UNLOCATABLE = "unlocatable"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class LocateResult:
    status: LocateStatus
    point: Optional[Tuple[int, int]] = None
