"""Failure taxonomy for the scroll/click loop.

Only Cancelled is allowed to end the engine; everything else is caught at the
cycle boundary and retried on the next pass.
"""


class AutopickError(Exception):
    pass


class CaptureError(AutopickError):
    """The text reader could not run at all (as opposed to finding no text)."""


class ConfigurationMissing(AutopickError):
    """No settings have been supplied yet."""


class DispatchFailure(AutopickError):
    """The actuator refused a gesture."""


class SettingsError(AutopickError, ValueError):
    """Settings failed validation."""


class Cancelled(AutopickError):
    """Cooperative shutdown requested through a CancelToken."""
