"""Host input-idle probe and power event plumbing"""
import logging
import subprocess
import sys
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

_idle_impl: Optional[Callable[[], float]] = None
_probe_failure_logged = False

def _init_idle_impl() -> Callable[[], float]:
    """Pick the platform idle probe once"""
    if sys.platform == "win32":
        from ctypes import Structure, byref, c_uint, sizeof, windll

        class LASTINPUTINFO(Structure):
            _fields_ = [("cbSize", c_uint), ("dwTime", c_uint)]

        def _win_idle() -> float:
            info = LASTINPUTINFO()
            info.cbSize = sizeof(LASTINPUTINFO)
            if windll.user32.GetLastInputInfo(byref(info)):
                return (windll.kernel32.GetTickCount() - info.dwTime) / 1000.0
            return 0.0
        return _win_idle

    if sys.platform == "darwin":
        import ctypes
        import ctypes.util
        cg = ctypes.cdll.LoadLibrary(ctypes.util.find_library("CoreGraphics"))
        fn = cg.CGEventSourceSecondsSinceLastEventType
        fn.restype = ctypes.c_double
        fn.argtypes = [ctypes.c_int32, ctypes.c_uint32]
        # kCGEventSourceStateHIDSystemState = 1, kCGAnyInputEventType = ~0
        return lambda: fn(1, 0xFFFFFFFF)

    def _linux_idle() -> float:
        result = subprocess.run(["xprintidle"], capture_output=True, text=True, timeout=2)
        return int(result.stdout.strip()) / 1000.0
    return _linux_idle

def get_idle_seconds() -> float:
    """Seconds since the last keyboard/pointer event; 0.0 if detection is unavailable"""
    global _idle_impl, _probe_failure_logged
    if _idle_impl is None:
        try:
            _idle_impl = _init_idle_impl()
        except (OSError, AttributeError, ImportError) as e:
            logger.warning(f"Idle detection unavailable: {e}")
            _idle_impl = lambda: 0.0
    try:
        return max(0.0, float(_idle_impl()))
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        if not _probe_failure_logged:
            logger.warning(f"Idle detection failing, all time counts as active: {e}")
            _probe_failure_logged = True
        else:
            logger.debug(f"Idle probe failed: {e}")
        return 0.0

PowerCallback = Callable[[], None]

SCREEN_SLEEP = "screen_sleep"
SCREEN_WAKE = "screen_wake"
SYSTEM_SLEEP = "system_sleep"
SYSTEM_WAKE = "system_wake"
POWER_OFF = "power_off"

class PowerEventSource:
    """Registration interface for display and system power events.

    OS bindings subclass this and call ``emit`` from their callbacks; the core
    only registers handlers.
    """

    EVENTS = (SCREEN_SLEEP, SCREEN_WAKE, SYSTEM_SLEEP, SYSTEM_WAKE, POWER_OFF)

    def __init__(self):
        self._handlers: Dict[str, List[PowerCallback]] = {name: [] for name in self.EVENTS}

    def on_screen_sleep(self, callback: PowerCallback) -> None:
        self._handlers[SCREEN_SLEEP].append(callback)

    def on_screen_wake(self, callback: PowerCallback) -> None:
        self._handlers[SCREEN_WAKE].append(callback)

    def on_system_sleep(self, callback: PowerCallback) -> None:
        self._handlers[SYSTEM_SLEEP].append(callback)

    def on_system_wake(self, callback: PowerCallback) -> None:
        self._handlers[SYSTEM_WAKE].append(callback)

    def on_power_off(self, callback: PowerCallback) -> None:
        self._handlers[POWER_OFF].append(callback)

    def emit(self, event: str) -> None:
        if event not in self._handlers:
            raise ValueError(f"Unknown power event: {event}")
        logger.info(f"Power event: {event}")
        for callback in list(self._handlers[event]):
            try:
                callback()
            except Exception as e:
                logger.error(f"Power event handler for {event} failed: {e}", exc_info=True)

class ManualPowerEventSource(PowerEventSource):
    """Power source driven by the caller (CLI, tests, signal handlers)"""

    def screen_sleep(self) -> None:
        self.emit(SCREEN_SLEEP)

    def screen_wake(self) -> None:
        self.emit(SCREEN_WAKE)

    def system_sleep(self) -> None:
        self.emit(SYSTEM_SLEEP)

    def system_wake(self) -> None:
        self.emit(SYSTEM_WAKE)

    def power_off(self) -> None:
        self.emit(POWER_OFF)
