from colorama import Fore

from . import config
from .config import print
from .models import CaptureResult, LocateResult, LocateStatus


def locate_text(result: CaptureResult, target: str) -> LocateResult:
    """Find where `target` sits on screen.

    The first block (in traversal order) containing the target wins, so
    duplicate labels always resolve to the same one. If the text only exists
    across several blocks the result is UNLOCATABLE and the caller should tap
    its configured point instead.
    """
    match = next((block for block in result.blocks if target in block.text), None)
    if match is not None:
        point = match.center()
        if config.DEBUG_LOOP:
            print(f"[DEBUG] '{target}' located at x={point[0]}, y={point[1]}")
        return LocateResult(LocateStatus.FOUND, point)

    index = result.text.find(target)
    if index >= 0:
        print(f"{Fore.YELLOW}[!] '{target}' found at character {index}, but no single block holds it.")
        return LocateResult(LocateStatus.UNLOCATABLE)

    return LocateResult(LocateStatus.NOT_FOUND)
