import time

import pytest

from focus_keeper.process_monitor import ForegroundObserver, WebsiteObserver
from focus_keeper.session import FocusSession


class ScriptedForeground(ForegroundObserver):
    """Returns queued app names one per call, then repeats the last one."""

    def __init__(self, *apps, delay: float = 0.0):
        self.apps = list(apps)
        self.delay = delay
        self.calls = 0

    def push(self, *apps):
        self.apps.extend(apps)

    def current_frontmost_application(self):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if not self.apps:
            return None
        if len(self.apps) > 1:
            return self.apps.pop(0)
        return self.apps[0]


class ScriptedWebsite(WebsiteObserver):
    def __init__(self, domain=None, delay: float = 0.0):
        self.domain = domain
        self.delay = delay
        self.calls = 0

    def active_browser_domain(self):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        return self.domain


class RaisingForeground(ForegroundObserver):
    def current_frontmost_application(self):
        raise RuntimeError("osascript exploded")


@pytest.fixture
def session():
    return FocusSession(25 * 60, blocked_apps=["Discord", "Steam"], blocked_domains=["youtube.com"])


@pytest.fixture
def reminders():
    return []
