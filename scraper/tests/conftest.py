"""Global pytest fixtures.
 - Sets env vars to disable logging side effects.
 - Provides zero-delay settings and a scriptable fake page session so the
   role scraper / coordinator run without a browser.
"""
from __future__ import annotations
import os
import pytest

from scraper.rolescout.errors import LaunchError, NavigationError
from scraper.rolescout.models import JobRecord
from scraper.rolescout.settings import Settings


@pytest.fixture(autouse=True, scope="session")
def test_env_setup():
    os.environ.setdefault('SCRAPER_DISABLE_FILE_LOGS', '1')
    os.environ.setdefault('SCRAPER_DISABLE_EVENTS', '1')
    yield


@pytest.fixture
def fast_settings():
    return Settings(
        site_url='https://jobs.example.com',
        page_delay=0,
        launch_retry_delay=0,
        rename_delay=0,
    )


def job(title, location='Pune', experience='2-5 Yrs', company='Acme', link=None):
    return JobRecord(
        title=title,
        company=company,
        location=location,
        experience=experience,
        link=link if link is not None else f"https://jobs.example.com/{title.lower().replace(' ', '-')}",
    )


class FakeDriver:
    def __init__(self, browser: 'FakeBrowser'):
        self.browser = browser
        self.current = 1
        self.urls = []
        self.user_agents = 0
        self.launched = False
        self.closed = False

    async def launch(self):
        self.browser.launch_attempts += 1
        if self.browser.launch_failures > 0:
            self.browser.launch_failures -= 1
            raise LaunchError("chrome exited with code 1")
        self.launched = True
        self.browser.active += 1
        self.browser.max_active = max(self.browser.max_active, self.browser.active)

    async def close(self):
        if self.launched and not self.closed:
            self.browser.active -= 1
        self.closed = True

    async def rotate_user_agent(self):
        if self.browser.ua_fail_on_page == self.current:
            raise NavigationError("Setting user agent failed: Target page, context or browser has been closed")
        self.user_agents += 1
        return 'test-agent'

    async def navigate(self, url):
        self.urls.append(url)
        self.browser.navigations += 1
        if self.browser.fail_on_page == self.current:
            raise self.browser.fail_with(f"failed loading page {self.current}")
        if self.browser.on_navigate:
            self.browser.on_navigate(self.current)

    async def auto_scroll(self):
        return None

    async def wait_for_results(self):
        return None

    async def extract_records(self):
        return list(self.browser.pages[self.current - 1])

    async def find_next_page(self):
        if self.current < len(self.browser.pages):
            return object()
        return None

    async def go_to_next_page(self, handle):
        self.current += 1


class FakeBrowser:
    """Session factory: every call hands out a new FakeDriver sharing this script."""

    def __init__(self, pages, launch_failures=0, fail_on_page=None, fail_with=NavigationError, on_navigate=None,
                 ua_fail_on_page=None):
        self.pages = pages
        self.launch_failures = launch_failures
        self.fail_on_page = fail_on_page
        self.fail_with = fail_with
        self.on_navigate = on_navigate
        self.ua_fail_on_page = ua_fail_on_page
        self.launch_attempts = 0
        self.navigations = 0
        self.active = 0
        self.max_active = 0
        self.drivers = []

    def __call__(self):
        d = FakeDriver(self)
        self.drivers.append(d)
        return d


@pytest.fixture
def make_job():
    return job


@pytest.fixture
def fake_browser():
    return FakeBrowser
