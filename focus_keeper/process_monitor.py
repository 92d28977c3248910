import sys
import subprocess
from urllib.parse import urlsplit

import psutil

from .config import BLOCKABLE_BROWSER, SUBPROCESS_TIMEOUT_SEC
from .logging_setup import get_logger


logger = get_logger("monitor")

_FRONTMOST_SCRIPT = 'tell application "System Events" to get name of first application process whose frontmost is true'
_CHROME_URL_SCRIPT = 'tell application "Google Chrome" to get URL of active tab of front window'


def run_command(args: list[str], timeout: float = SUBPROCESS_TIMEOUT_SEC) -> str | None:
    """First line of a command's stdout, or None on failure or timeout."""
    try:
        proc = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: {args[0]}")
        return None
    except OSError as exc:
        logger.warning(f"Command failed to start: {args[0]} ({exc})")
        return None

    if proc.returncode != 0:
        return None
    out = (proc.stdout or "").strip().splitlines()
    return out[0].strip() if out and out[0].strip() else None


def safe_process_name(pid: int | None) -> str | None:
    if not pid:
        return None
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None
    except Exception:
        return None


def extract_host(url: str | None) -> str | None:
    if not url:
        return None
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        return None
    return host.lower() if host else None


# Foreground observers
class ForegroundObserver:
    """Reports the frontmost application. The base class never sees one."""

    platform = "unsupported"

    def current_frontmost_application(self) -> str | None:
        return None


NullForegroundObserver = ForegroundObserver


class WindowsForegroundObserver(ForegroundObserver):
    platform = "win32"

    def __init__(self):
        import ctypes

        self._ctypes = ctypes
        self._user32 = ctypes.windll.user32

    def _foreground_pid(self) -> int | None:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None
        pid = self._ctypes.c_ulong(0)
        self._user32.GetWindowThreadProcessId(hwnd, self._ctypes.byref(pid))
        return pid.value or None

    def current_frontmost_application(self) -> str | None:
        return safe_process_name(self._foreground_pid())


class MacForegroundObserver(ForegroundObserver):
    platform = "darwin"

    def __init__(self, timeout: float = SUBPROCESS_TIMEOUT_SEC):
        self._timeout = timeout

    def current_frontmost_application(self) -> str | None:
        return run_command(["osascript", "-e", _FRONTMOST_SCRIPT], timeout=self._timeout)


class LinuxForegroundObserver(ForegroundObserver):
    """X11 only: asks xdotool for the focused window's pid."""

    platform = "linux"

    def __init__(self, timeout: float = SUBPROCESS_TIMEOUT_SEC):
        self._timeout = timeout

    def current_frontmost_application(self) -> str | None:
        out = run_command(["xdotool", "getactivewindow", "getwindowpid"], timeout=self._timeout)
        if not out or not out.isdigit():
            return None
        return safe_process_name(int(out))


def create_foreground_observer(platform: str | None = None) -> ForegroundObserver:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsForegroundObserver()
    if platform == "darwin":
        return MacForegroundObserver()
    if platform.startswith("linux"):
        return LinuxForegroundObserver()
    logger.warning(f"No foreground observer for platform={platform}, app blocking disabled")
    return NullForegroundObserver()


# Website observers
class WebsiteObserver:
    """Reports the active browser tab's domain. The base class never sees one."""

    browser_name = BLOCKABLE_BROWSER

    def active_browser_domain(self) -> str | None:
        return None


class ChromeWebsiteObserver(WebsiteObserver):
    browser_name = "Google Chrome"

    def __init__(self, timeout: float = SUBPROCESS_TIMEOUT_SEC):
        self._timeout = timeout

    def active_browser_domain(self) -> str | None:
        url = run_command(["osascript", "-e", _CHROME_URL_SCRIPT], timeout=self._timeout)
        return extract_host(url)


def create_website_observer(platform: str | None = None) -> WebsiteObserver:
    platform = platform or sys.platform
    if platform == "darwin":
        return ChromeWebsiteObserver()
    return WebsiteObserver()


# Matching
class AppMatcher:
    """Case-insensitive substring or `*` wildcard match against blocked app names."""

    def __init__(self, blocked: list[str] | tuple[str, ...] = ()):
        self._patterns: list[tuple[str, str]] = []
        self.set_targets(blocked)

    def set_targets(self, blocked) -> None:
        self._patterns = [(b.strip(), b.strip().lower()) for b in blocked or () if b and b.strip()]

    def set_from_text(self, text: str) -> None:
        self.set_targets((text or "").split(","))

    @property
    def targets(self) -> list[str]:
        return [orig for orig, _ in self._patterns]

    def match(self, app_name: str | None) -> str | None:
        """The blocked name that ``app_name`` matches, or None."""
        if not app_name or not app_name.strip():
            return None
        an = app_name.strip().lower()
        for orig, pat in self._patterns:
            if "*" in pat:
                if _glob_in_order(pat, an):
                    return orig
            elif pat in an or an in pat:
                return orig
        return None


def _glob_in_order(pattern: str, text: str) -> bool:
    parts = [p for p in pattern.split("*") if p]
    if not parts:
        return False
    idx = 0
    for part in parts:
        found = text.find(part, idx)
        if found < 0:
            return False
        idx = found + len(part)
    return True


class DomainMatcher:
    """Exact or subdomain match against blocked domains."""

    def __init__(self, blocked: list[str] | tuple[str, ...] = ()):
        self._domains = [d.strip().lower().lstrip(".") for d in blocked or () if d and d.strip()]

    @property
    def domains(self) -> list[str]:
        return list(self._domains)

    def match(self, host: str | None) -> str | None:
        if not host:
            return None
        h = host.strip().lower().rstrip(".")
        for d in self._domains:
            if h == d or h.endswith("." + d):
                return d
        return None
