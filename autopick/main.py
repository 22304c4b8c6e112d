import argparse
import sys
import time

from colorama import Fore

from . import config
from .config import print
from .errors import SettingsError
from .models import ClickPoint, ScrollDirection, Settings
from .service import AutoScrollService


def build_parser():
    parser = argparse.ArgumentParser(
        prog="autopick",
        description="Scroll a screen, watch a region for text and tap it when it appears.")
    parser.add_argument("--scroll-condition", default="", help="Text that must be visible before click checking starts")
    parser.add_argument("--click-condition", default="", help="Text that triggers the tap")
    parser.add_argument("--scroll-delay", type=float, default=config.SCROLL_CHECK_DELAY, help="Seconds to wait after each scroll")
    parser.add_argument("--click-delay", type=float, default=config.CLICK_CHECK_DELAY, help="Seconds between click checks")
    parser.add_argument("--click-timeout", type=float, default=config.CLICK_TIMEOUT, help="Give up click checking after this many seconds")
    parser.add_argument("--direction", choices=["up", "down"], default=config.SCROLL_DIRECTION, help="Scroll direction")
    parser.add_argument("--radius", type=int, default=config.SEARCH_RADIUS, help="Half-size of the search square around the click point")
    parser.add_argument("--click-point", type=str, metavar="X,Y", help="Centre of the search area and fallback tap position")
    parser.add_argument("--backend", choices=["adb", "desktop"], default="adb", help="Where gestures go: Android over ADB or the local desktop")
    parser.add_argument("--reader", choices=["uitree", "ocr"], default="uitree", help="Read text from the UI tree (ADB only) or with OCR")
    parser.add_argument("--device", type=str, help="ADB serial of the target device")
    parser.add_argument("--adb-path", type=str, help="Path to the adb binary")
    parser.add_argument("--gpu", action="store_true", help="Use GPU for OCR")
    parser.add_argument("--debug", action="store_true", help="Trace every step of every cycle")
    return parser


def settings_from_args(args) -> Settings:
    click_point = ClickPoint.parse(args.click_point) if args.click_point else None
    return Settings(
        scroll_condition=args.scroll_condition.strip(),
        click_condition=args.click_condition.strip(),
        scroll_check_delay=args.scroll_delay,
        click_check_delay=args.click_delay,
        click_timeout=args.click_timeout,
        scroll_direction=ScrollDirection(args.direction),
        search_radius=args.radius,
        click_point=click_point,
    ).validate()


def build_backend(args):
    """Return (reader, actuator) for the chosen backend."""
    from .perception import OcrRegionReader, ScreenGrabber, UiTreeReader

    if args.backend == "adb":
        from .mobile import MobileController
        mobile = MobileController(adb_path=args.adb_path, device_id=args.device)
        if not mobile.connect():
            raise SystemExit(1)
        if args.reader == "ocr":
            return OcrRegionReader(mobile.grab), mobile
        return UiTreeReader(mobile.ui_tree), mobile

    if args.reader == "uitree":
        print(f"{Fore.RED}[!] The UI tree reader needs --backend adb; use --reader ocr on the desktop.")
        raise SystemExit(2)
    from .execution import DesktopActuator
    return OcrRegionReader(ScreenGrabber()), DesktopActuator()


def main(argv=None):
    """Main entry point for CLI execution."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        config.DEBUG_LOOP = True
    if args.gpu:
        config.OCR_USE_GPU = True
        print(f"{Fore.CYAN}[*] GPU Mode: Enabled for OCR")
    if args.adb_path:
        config.ADB_PATH = args.adb_path

    try:
        settings = settings_from_args(args)
    except SettingsError as e:
        parser.error(str(e))

    if settings.click_point is None:
        print(f"{Fore.YELLOW}[!] No --click-point given: the loop will only scroll.")

    config.check_deps(backend=args.backend, reader=args.reader)
    reader, actuator = build_backend(args)

    service = AutoScrollService(reader, actuator)
    service.update_settings(settings)
    service.start()
    print(f"{Fore.YELLOW}[*] Running. Press Ctrl+C to stop.")
    try:
        while service.thread is not None and service.thread.is_alive():
            time.sleep(0.5)
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}[*] Stopping...")
    finally:
        service.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
