from .config import check_deps
from .errors import AutopickError, Cancelled, CaptureError, ConfigurationMissing, DispatchFailure, SettingsError
from .models import (CaptureResult, ClickOutcome, ClickPoint, CycleOutcome, LocateResult,
                     LocateStatus, Rect, ScrollDirection, Settings, TextBlock)
from .state import CancelToken, RunState
from .locator import locate_text
from .perception import OcrRegionReader, RegionCapture, UiTreeReader, search_area
from .clicker import ClickRetryController
from .engine import CycleEngine
from .service import AutoScrollService
from .main import main
