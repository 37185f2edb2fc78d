"""Foreground application lookup."""
import logging
import platform
from typing import Optional

import psutil

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("Windows", "Linux", "Darwin")

# Platform-specific imports
if platform.system() == "Windows":
    try:
        import win32gui
        import win32process
    except ImportError:
        win32gui = win32process = None
        logger.warning("pywin32 not installed, foreground tracking disabled")
elif platform.system() == "Linux":
    try:
        from Xlib import display
    except ImportError:
        display = None
        logger.warning("python-xlib not installed, foreground tracking disabled")
elif platform.system() == "Darwin":  # macOS
    try:
        from AppKit import NSWorkspace
    except ImportError:
        NSWorkspace = None
        logger.warning("pyobjc not installed, foreground tracking disabled")


class ForegroundTracker:
    """Report the name of the application the user is looking at."""

    def __init__(self):
        self.system = platform.system()

    def active_app_windows(self) -> Optional[str]:
        if win32gui is None:
            return None
        window = win32gui.GetForegroundWindow()
        _, pid = win32process.GetWindowThreadProcessId(window)
        try:
            return psutil.Process(pid).name()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return None

    def active_app_linux(self) -> Optional[str]:
        if display is None:
            return None
        window = display.Display().get_input_focus().focus
        wmclass = window.get_wm_class()
        if not wmclass:
            return None
        return wmclass[1] if len(wmclass) > 1 else wmclass[0]

    def active_app_macos(self) -> Optional[str]:
        if NSWorkspace is None:
            return None
        return NSWorkspace.sharedWorkspace().activeApplication()["NSApplicationName"]

    def active_app(self) -> Optional[str]:
        """Foreground application name, or None when it cannot be determined."""
        lookups = {
            "Windows": self.active_app_windows,
            "Linux": self.active_app_linux,
            "Darwin": self.active_app_macos,
        }
        lookup = lookups.get(self.system)
        if lookup is None:
            logger.warning("Unsupported platform: %s", self.system)
            return None
        try:
            return lookup()
        except Exception as e:
            logger.error("Error getting active window: %s", e)
            return None
