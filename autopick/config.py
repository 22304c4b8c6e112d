import sys
import shutil
from colorama import Fore, Style, init

# Initialize Colorama
init(autoreset=True)

# --- QUIET MODE ---
# If True, redirects all print() calls to stderr so stdout stays clean for piping
QUIET_MODE = False
_builtin_print = print

def safe_print(*args, **kwargs):
    if QUIET_MODE:
        kwargs['file'] = sys.stderr
    _builtin_print(*args, **kwargs)

# Export the safe print as 'print' for other modules to import
print = safe_print

# --- CYCLE DEFAULTS (seconds) ---
SCROLL_CHECK_DELAY = 3.0
CLICK_CHECK_DELAY = 3.0
CLICK_TIMEOUT = 650.0
SEARCH_RADIUS = 130
SCROLL_DIRECTION = "down"

# --- LOOP HEALTH ---
SETTINGS_BACKOFF = 1.0     # Wait when no settings have been supplied yet
ERROR_BACKOFF = 1.0        # Wait after a failed cycle
DIAGNOSTIC_INTERVAL = 10   # Cycles between self-diagnosis passes

# --- LIFECYCLE ---
STOP_JOIN_TIMEOUT = 2.0    # Bounded wait for the engine thread on stop()
RESTART_PAUSE = 1.0        # Pause before restoring 'running' on soft restart

# --- GESTURES ---
SWIPE_DURATION_MS = 500
TAP_DURATION_MS = 100

# --- MOBILE CONFIGURATION ---
ADB_PATH = "adb"  # Helper assumes 'adb' in PATH, or provide absolute path
DEVICE_ID = ""    # Empty = first device reported by 'adb devices'
UI_DUMP_PATH = "/sdcard/window_dump.xml"

# --- OCR CONFIGURATION ---
OCR_MIN_SCORE = 0.4
OCR_USE_GPU = False

DEBUG_LOOP = False

# --- 0. DEPENDENCY CHECK ---
def check_deps(backend="adb", reader="uitree"):
    if reader == "ocr":
        try:
            import rapidocr_onnxruntime
        except ImportError as e:
            safe_print(f"{Fore.RED}[!] CRITICAL MISSING LIB: {e.name}")
            sys.exit(1)

    if backend == "adb":
        if shutil.which(ADB_PATH) is None:
            safe_print(f"{Fore.RED}[!] ADB binary not found at '{ADB_PATH}'. Install platform-tools or pass --adb-path.")
            sys.exit(1)
    else:
        try:
            import pyautogui
        except ImportError as e:
            safe_print(f"{Fore.RED}[!] CRITICAL MISSING LIB: {e.name}")
            sys.exit(1)
    safe_print(f"{Fore.GREEN}[*] System Ready. Backend: {backend.upper()} / Reader: {reader.upper()}{Style.RESET_ALL}")
