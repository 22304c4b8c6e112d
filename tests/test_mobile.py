import subprocess

import pytest
from PIL import Image

from autopick import mobile as mobile_module
from autopick.errors import CaptureError
from autopick.mobile import MobileController
from autopick.models import Rect, ScrollDirection


class FakeAdb:
    """Stands in for subprocess.run; answers by matching the ADB arguments."""
    def __init__(self, replies=None):
        self.replies = replies or {}
        self.calls = []

    def __call__(self, cmd, capture_output=True, text=True, timeout=None):
        self.calls.append(cmd)
        args = cmd[3:] if cmd[1:2] == ["-s"] else cmd[1:]
        reply = self.replies.get(" ".join(args), "")
        if reply is None:
            return subprocess.CompletedProcess(cmd, 1, "", "error: device offline")
        return subprocess.CompletedProcess(cmd, 0, reply, "")


@pytest.fixture
def adb(monkeypatch):
    fake = FakeAdb()
    monkeypatch.setattr(mobile_module.subprocess, "run", fake)
    return fake


def test_connect_picks_first_device(adb):
    adb.replies["devices"] = "List of devices attached\nemulator-5554\tdevice\nR58M\tunauthorized\n"
    mobile = MobileController(adb_path="adb")
    assert mobile.connect()
    assert mobile.device_id == "emulator-5554"


def test_connect_without_devices(adb):
    adb.replies["devices"] = "List of devices attached\n\n"
    assert not MobileController(adb_path="adb").connect()


def test_override_size_wins(adb):
    adb.replies["shell wm size"] = "Physical size: 1080x2340\nOverride size: 720x1560\n"
    mobile = MobileController(adb_path="adb", device_id="emulator-5554")
    assert mobile.screen_size() == (720, 1560)
    mobile.screen_size()
    assert len(adb.calls) == 1


def test_unreadable_size_is_a_capture_error(adb):
    adb.replies["shell wm size"] = None
    with pytest.raises(CaptureError):
        MobileController(adb_path="adb", device_id="x").screen_size()


def test_scroll_and_tap_commands(adb):
    mobile = MobileController(adb_path="adb", device_id="emulator-5554")
    assert mobile.scroll(ScrollDirection.DOWN, 1000, 2000)
    assert mobile.tap(100.7, 200.2)
    assert adb.calls[0] == ["adb", "-s", "emulator-5554", "shell", "input", "swipe",
                            "500", "1800", "500", "400", "500"]
    assert adb.calls[1][-3:] == ["tap", "100", "200"]


def test_refused_gesture_reports_false(adb):
    adb.replies["shell input tap 1 2"] = None
    assert not MobileController(adb_path="adb", device_id="x").tap(1, 2)


def test_missing_adb_binary_disables_controller(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError("adb")
    monkeypatch.setattr(mobile_module.subprocess, "run", missing)
    mobile = MobileController(adb_path="/nope/adb", device_id="x")
    assert not mobile.tap(1, 2)
    assert not mobile.enabled
    assert not mobile.is_available()


def test_ui_tree_from_dump(adb):
    adb.replies["exec-out uiautomator dump /dev/tty"] = (
        '<?xml version="1.0" encoding="UTF-8"?><hierarchy rotation="0">'
        '<node text="CLAIM" content-desc="" package="p" bounds="[0,0][100,50]" />'
        '</hierarchy>UI hierchary dumped to: /dev/tty')
    root = MobileController(adb_path="adb", device_id="x").ui_tree()
    assert root.children[0].text == "CLAIM"
    assert root.children[0].bounds == Rect(0, 0, 100, 50)


def test_ui_tree_falls_back_to_file_dump(adb):
    adb.replies["shell uiautomator dump /sdcard/window_dump.xml"] = "UI hierchary dumped to: /sdcard/window_dump.xml"
    adb.replies["exec-out cat /sdcard/window_dump.xml"] = (
        '<hierarchy><node text="LOAD" bounds="[0,0][10,10]" /></hierarchy>')
    root = MobileController(adb_path="adb", device_id="x").ui_tree()
    assert root.children[0].text == "LOAD"


def test_swipe_paths():
    assert ScrollDirection.DOWN.swipe_path(1000, 2000) == (500, 1800, 500, 400)
    assert ScrollDirection.UP.swipe_path(1000, 2000) == (500, 400, 500, 1600)


def red_square_screenshot(size, square):
    img = Image.new("RGB", size, "black")
    img.paste((255, 0, 0), square)
    return img


def test_grab_crops_region_in_bgr(monkeypatch):
    mobile = MobileController(adb_path="adb", device_id="x")
    mobile._screen_size = (1080, 2340)
    shot = red_square_screenshot((1080, 2340), (100, 200, 200, 300))
    monkeypatch.setattr(mobile, "capture_screen", lambda: shot)

    frame = mobile.grab(Rect(100, 200, 200, 300))
    assert frame.shape == (100, 100, 3)
    assert (frame == [0, 0, 255]).all()


def test_grab_scales_from_physical_screenshot_to_override_size(monkeypatch):
    mobile = MobileController(adb_path="adb", device_id="x")
    mobile._screen_size = (1080, 2340)  # Override size
    # Physical panel is twice as dense; the same square sits at doubled coordinates
    shot = red_square_screenshot((2160, 4680), (200, 400, 400, 600))
    monkeypatch.setattr(mobile, "capture_screen", lambda: shot)

    frame = mobile.grab(Rect(100, 200, 200, 300))
    assert frame.shape == (100, 100, 3)
    assert (frame == [0, 0, 255]).all()


def test_grab_without_screenshot(monkeypatch):
    mobile = MobileController(adb_path="adb", device_id="x")
    monkeypatch.setattr(mobile, "capture_screen", lambda: None)
    assert mobile.grab(Rect(0, 0, 10, 10)) is None
