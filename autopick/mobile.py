import io
import re
import subprocess

import cv2
import numpy as np
from colorama import Fore

from . import config
from .config import print
from .errors import CaptureError
from .perception import parse_ui_dump

# Requires ADB in PATH or configured in config.py
# Uses 'adb exec-out screencap -p' for screen capture,
# 'adb exec-out uiautomator dump' for the UI tree and 'adb shell input' for control

SIZE_PATTERN = re.compile(r"(Physical|Override) size:\s*(\d+)x(\d+)")


class MobileController:
    """Android device driven over ADB: gestures, screen size, UI tree, screenshots."""
    def __init__(self, adb_path=None, device_id=None):
        self.adb_path = adb_path or config.ADB_PATH
        self.device_id = device_id or config.DEVICE_ID or None
        self.enabled = True
        self._screen_size = None

    def _run_adb(self, args, binary=False):
        """Run ADB command. Returns stdout, or None when the command failed."""
        cmd = [self.adb_path]
        if self.device_id:
            cmd += ["-s", self.device_id]
        cmd += args
        try:
            result = subprocess.run(cmd, capture_output=True, text=not binary, timeout=15)
            if result.returncode != 0:
                if config.DEBUG_LOOP:
                    print(f"{Fore.RED}[!] ADB Error ({' '.join(args)}): {result.stderr}")
                return None
            return result.stdout
        except FileNotFoundError:
            print(f"{Fore.RED}[!] ADB binary not found at '{self.adb_path}'")
            self.enabled = False
            return None
        except subprocess.TimeoutExpired:
            print(f"{Fore.RED}[!] ADB timed out: {' '.join(args)}")
            return None

    def connect(self):
        """Pick the first connected device unless one was given."""
        if not self.enabled: return False

        if self.device_id is None:
            output = self._run_adb(["devices"])
            if not output: return False
            lines = output.strip().split('\n')[1:]
            devices = [line.split('\t')[0] for line in lines if '\tdevice' in line]
            if not devices:
                print(f"{Fore.YELLOW}[!] No Android devices found. Enable USB Debugging.")
                return False
            self.device_id = devices[0]

        print(f"{Fore.CYAN}[*] Connected to Android Device: {self.device_id}")
        return True

    def is_available(self):
        if not self.enabled: return False
        return (self._run_adb(["get-state"]) or "").strip() == "device"

    def screen_size(self):
        """(width, height) in pixels. 'Override size' wins over 'Physical size'."""
        if self._screen_size is None:
            output = self._run_adb(["shell", "wm", "size"])
            if not output:
                raise CaptureError("Could not read screen size from device")
            sizes = {kind: (int(w), int(h)) for kind, w, h in SIZE_PATTERN.findall(output)}
            size = sizes.get("Override") or sizes.get("Physical")
            if size is None:
                raise CaptureError(f"Unrecognised 'wm size' output: {output.strip()}")
            self._screen_size = size
        return self._screen_size

    def scroll(self, direction, width, height):
        """Swipe across the screen. Returns True when ADB accepted the gesture."""
        x1, y1, x2, y2 = direction.swipe_path(width, height)
        ok = self.swipe(x1, y1, x2, y2, config.SWIPE_DURATION_MS)
        if ok and config.DEBUG_LOOP:
            print(f"[DEBUG] Scroll gesture dispatched from y={y1} to y={y2}")
        return ok

    def tap(self, x, y):
        """Tap at coordinates."""
        if not self.enabled: return False
        return self._run_adb(["shell", "input", "tap", str(int(x)), str(int(y))]) is not None

    def swipe(self, x1, y1, x2, y2, duration=300):
        """Swipe from (x1,y1) to (x2,y2)."""
        if not self.enabled: return False
        return self._run_adb(["shell", "input", "swipe", str(x1), str(y1), str(x2), str(y2), str(duration)]) is not None

    def ui_tree(self):
        """Current UI hierarchy root, or None when the dump failed."""
        if not self.enabled: return None
        output = self._run_adb(["exec-out", "uiautomator", "dump", "/dev/tty"])
        if not output or "<hierarchy" not in output:
            # Some builds refuse /dev/tty; fall back to a file on the device
            if self._run_adb(["shell", "uiautomator", "dump", config.UI_DUMP_PATH]) is None:
                return None
            output = self._run_adb(["exec-out", "cat", config.UI_DUMP_PATH])
            if not output:
                return None
        return parse_ui_dump(output)

    def capture_screen(self):
        """Capture screen as PIL Image."""
        if not self.enabled: return None

        img_data = self._run_adb(["exec-out", "screencap", "-p"], binary=True)
        if img_data:
            from PIL import Image
            try:
                return Image.open(io.BytesIO(img_data))
            except Exception as e:
                print(f"{Fore.RED}[!] Image Parse Error: {e}")
        return None

    def grab(self, rect):
        """Frame source for OcrRegionReader: the region cropped from a fresh screenshot (BGR).

        screencap returns physical pixels while `wm size` may report an
        override, so the crop is scaled into the screenshot and back.
        """
        img = self.capture_screen()
        if img is None:
            return None
        bgr = cv2.cvtColor(np.array(img.convert("RGB")), cv2.COLOR_RGB2BGR)
        img_h, img_w = bgr.shape[:2]
        width, height = self.screen_size()
        if (img_w, img_h) == (width, height):
            return bgr[rect.top:rect.bottom, rect.left:rect.right].copy()

        sx, sy = img_w / width, img_h / height
        crop = bgr[round(rect.top * sy):round(rect.bottom * sy),
                   round(rect.left * sx):round(rect.right * sx)]
        if crop.size == 0:
            return None
        return cv2.resize(crop, (rect.width, rect.height), interpolation=cv2.INTER_AREA)
