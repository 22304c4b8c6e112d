import pyautogui
from colorama import Fore

from . import config
from .config import print


# --- DESKTOP GESTURES ---
class DesktopActuator:
    """Scroll and tap on the local desktop with pyautogui."""
    def __init__(self):
        pyautogui.FAILSAFE = False
        pyautogui.PAUSE = 0.05

    def screen_size(self):
        width, height = pyautogui.size()
        return int(width), int(height)

    def is_available(self) -> bool:
        try:
            pyautogui.position()
            return True
        except Exception as e:
            print(f"{Fore.RED}[!] Pointer unavailable: {e}")
            return False

    def scroll(self, direction, width, height) -> bool:
        x1, y1, x2, y2 = direction.swipe_path(width, height)
        try:
            pyautogui.moveTo(x1, y1)
            pyautogui.dragTo(x2, y2, duration=config.SWIPE_DURATION_MS / 1000.0, button="left")
            return True
        except Exception as e:
            print(f"{Fore.RED}[!] Scroll Error: {e}")
            return False

    def tap(self, x, y) -> bool:
        try:
            pyautogui.click(int(x), int(y))
            return True
        except Exception as e:
            print(f"{Fore.RED}[!] Click Error: {e}")
            return False
