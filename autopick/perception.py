import re
import threading
import unicodedata
import xml.etree.ElementTree as ET
from typing import Callable, List, Optional, Tuple

import cv2
import mss
import numpy as np
from colorama import Fore

from . import config
from .config import print
from .errors import CaptureError
from .models import CaptureResult, ClickPoint, Rect, TextBlock

BOUNDS_PATTERN = re.compile(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]")


# --- 1. CAPTURE BOUNDS ---
def search_area(point: ClickPoint, radius: int, width: int, height: int) -> Rect:
    """Square of `radius` around the point, clamped to the screen."""
    x, y = int(point.x), int(point.y)
    return Rect(
        max(0, x - radius),
        max(0, y - radius),
        min(width, x + radius),
        min(height, y + radius),
    )


class RegionCapture:
    """Validates the search area before handing it to a reader.

    Bad input (no point, non-positive radius, point off screen) yields an
    empty result and the reader is never called.
    """
    def __init__(self, reader):
        self.reader = reader

    def capture(self, point: Optional[ClickPoint], radius: int, screen_size: Tuple[int, int]) -> CaptureResult:
        width, height = screen_size
        if point is None:
            print(f"{Fore.RED}[!] No click point defined, nothing to capture")
            return CaptureResult.empty()
        if radius <= 0:
            print(f"{Fore.RED}[!] Invalid radius: {radius}. Radius must be positive.")
            return CaptureResult.empty()
        if not (0 <= point.x <= width and 0 <= point.y <= height):
            print(f"{Fore.RED}[!] Click point ({point.x}, {point.y}) is outside screen bounds ({width}x{height})")
            return CaptureResult.empty()

        rect = search_area(point, radius, width, height)
        if config.DEBUG_LOOP:
            print(f"[DEBUG] Capturing {rect} around ({point.x}, {point.y}) r={radius}")
        result = self.reader.capture(rect)
        if not result.blocks and config.DEBUG_LOOP:
            print(f"{Fore.YELLOW}[!] No positioned text blocks found in {rect}")
        return result


# --- 2. UI TREE READER ---
class UiNode:
    """One node of a uiautomator XML dump."""
    def __init__(self, element):
        self.element = element

    @property
    def text(self) -> str:
        return self.element.get("text") or ""

    @property
    def content_description(self) -> str:
        return self.element.get("content-desc") or ""

    @property
    def bounds(self) -> Optional[Rect]:
        return parse_bounds(self.element.get("bounds", ""))

    @property
    def children(self) -> List["UiNode"]:
        return [UiNode(child) for child in self.element if child.tag == "node"]

    def foreground_package(self) -> str:
        """Package of the first node that names one."""
        for element in self.element.iter("node"):
            if element.get("package"):
                return element.get("package")
        return ""


def parse_bounds(raw: str) -> Optional[Rect]:
    """'[l,t][r,b]' -> Rect"""
    m = BOUNDS_PATTERN.fullmatch(raw.strip())
    if not m:
        return None
    return Rect(*(int(v) for v in m.groups()))


def parse_ui_dump(xml_text: str) -> Optional[UiNode]:
    """Parse a uiautomator dump into a tree root (None if it holds no nodes).

    The <hierarchy> element itself becomes the root; it carries no bounds, so
    every window below it is walked.
    """
    # 'exec-out uiautomator dump /dev/tty' appends a status line after the XML
    start = xml_text.find("<hierarchy")
    if start < 0:
        start = xml_text.find("<node")
    end = xml_text.rfind(">")
    if start < 0 or end < start:
        return None
    try:
        hierarchy = ET.fromstring(xml_text[start:end + 1])
    except ET.ParseError as e:
        raise CaptureError(f"Malformed UI dump: {e}")
    if hierarchy.tag != "node" and hierarchy.find("node") is None:
        return None
    return UiNode(hierarchy)


def walk_text_nodes(root, area: Rect) -> List[TextBlock]:
    """Collect text and content descriptions from nodes overlapping `area`.

    Pre-order, with an explicit stack. A node outside the area is skipped
    together with its whole subtree; a node without bounds only contributes
    its children.
    """
    blocks = []
    stack = [root] if root is not None else []
    while stack:
        node = stack.pop()
        bounds = node.bounds
        if bounds is None:
            stack.extend(reversed(node.children))
            continue
        if not bounds.intersects(area):
            continue
        if node.text:
            blocks.append(TextBlock(node.text, bounds))
        if node.content_description:
            blocks.append(TextBlock(node.content_description, bounds))
        stack.extend(reversed(node.children))
    return blocks


def count_nodes(root) -> int:
    count = 0
    stack = [root] if root is not None else []
    while stack:
        node = stack.pop()
        count += 1
        stack.extend(node.children)
    return count


class UiTreeReader:
    """Reads text from an accessibility tree instead of pixels.

    `root_provider` returns the current root node, or None when the tree
    cannot be read.
    """
    def __init__(self, root_provider: Callable):
        self.root_provider = root_provider
        self.package = ""
        self.node_count = 0

    def capture(self, rect: Rect) -> CaptureResult:
        root = self.root_provider()
        if root is None:
            print(f"{Fore.RED}[!] Failed to get the active window root, cannot read screen")
            return CaptureResult.empty()
        blocks = walk_text_nodes(root, rect)
        if config.DEBUG_LOOP:
            print(f"[DEBUG] UI tree read finished with {len(blocks)} positioned text blocks")
        return CaptureResult.from_blocks(blocks)

    def is_available(self) -> bool:
        """Probe the tree; remembers the foreground package and node count."""
        self.package, self.node_count = "", 0
        try:
            root = self.root_provider()
        except Exception as e:
            print(f"{Fore.RED}[!] Root window probe failed: {e}")
            return False
        if root is None:
            return False
        self.package = root.foreground_package()
        self.node_count = count_nodes(root)
        return self.node_count > 0

    def describe(self) -> str:
        return f"package={self.package or '?'} nodes={self.node_count}"

    def reset(self):
        pass

    def close(self):
        pass


# --- 3. OCR READER ---
class ScreenGrabber:
    """Desktop frame source backed by mss."""
    def __call__(self, rect: Rect):
        with mss.mss() as sct:
            region = {"left": rect.left, "top": rect.top, "width": rect.width, "height": rect.height}
            return np.array(sct.grab(region))


class OcrRegionReader:
    """Runs RapidOCR over the pixels of a screen region.

    `grab` takes a Rect and returns the region as a BGR or BGRA array. The
    OCR model is built on first use and dropped by reset()/close().
    """
    def __init__(self, grab: Callable, min_score: float = None, use_gpu: bool = None):
        self.grab = grab
        self.min_score = config.OCR_MIN_SCORE if min_score is None else min_score
        self.use_gpu = config.OCR_USE_GPU if use_gpu is None else use_gpu
        self.ocr = None
        self._lock = threading.Lock()

    def _engine(self):
        if self.ocr is None:
            from rapidocr_onnxruntime import RapidOCR
            gpu_status = "GPU" if self.use_gpu else "CPU"
            print(f"{Fore.CYAN}[*] Initialization: RAPIDOCR Engine ({gpu_status})")
            self.ocr = RapidOCR(det_use_gpu=self.use_gpu, cls_use_gpu=self.use_gpu,
                                rec_use_gpu=self.use_gpu, intra_op_num_threads=4)
        return self.ocr

    def capture(self, rect: Rect) -> CaptureResult:
        if rect.width <= 0 or rect.height <= 0:
            print(f"{Fore.RED}[!] Invalid area dimensions: {rect.width} x {rect.height}")
            return CaptureResult.empty()
        img = self.grab(rect)
        if img is None:
            raise CaptureError("Screen grab returned nothing")
        with self._lock:
            blocks = self._ocr_image(self._engine(), img, rect.left, rect.top)
        return CaptureResult.from_blocks(blocks)

    def _ocr_image(self, ocr, img, offset_x, offset_y) -> List[TextBlock]:
        """Run OCR on an image and return blocks in screen coordinates."""
        if img.ndim == 3 and img.shape[2] == 4:
            img = cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
        result, _ = ocr(img)
        blocks = []
        for box, text, score in result or []:
            if float(score) < self.min_score:
                continue
            # --- NORMALIZE "STYLISH" FONTS --- (e.g. 𝐂𝐥𝐚𝐢𝐦 -> Claim)
            text = unicodedata.normalize("NFKC", text).strip()
            if not text:
                continue
            xs = [p[0] for p in box]
            ys = [p[1] for p in box]
            bounds = Rect(int(min(xs)) + offset_x, int(min(ys)) + offset_y,
                          int(max(xs)) + offset_x, int(max(ys)) + offset_y)
            blocks.append(TextBlock(text, bounds))
        return blocks

    def is_available(self) -> bool:
        try:
            with self._lock:
                self._engine()
            return True
        except Exception as e:
            print(f"{Fore.RED}[!] OCR engine unavailable: {e}")
            return False

    def describe(self) -> str:
        return f"RapidOCR ({'GPU' if self.use_gpu else 'CPU'}, min score {self.min_score})"

    def reset(self):
        with self._lock:
            self.ocr = None
        print(f"{Fore.CYAN}[*] Text recognizer has been reset")

    def close(self):
        with self._lock:
            self.ocr = None
