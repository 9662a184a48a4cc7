from __future__ import annotations
"""
Playwright page session: one browser, one context, one page per role.

Owns everything that touches the DOM: navigation, scroll-to-bottom triggering
of lazy results, waiting for the results container, projecting result tuples
into JobRecords through the ExtractionSchema, and clicking pagination.
Playwright failures are translated into the rolescout error taxonomy so the
role scraper never has to know about playwright exception types.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import logging
import random
import shutil

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from .errors import LaunchError, NavigationError, SelectorTimeoutError
from .models import JobRecord
from .schema import ExtractionSchema
from .settings import DEFAULT_USER_AGENT, Settings, load_settings

logger = logging.getLogger('session')

BROWSER_CANDIDATES = [
    'C:/Program Files/Google/Chrome/Application/chrome.exe',
    'C:/Program Files (x86)/Google/Chrome/Application/chrome.exe',
    '/usr/bin/google-chrome',
    '/usr/bin/chromium',
    '/usr/bin/chromium-browser',
    '/Applications/Google Chrome.app/Contents/MacOS/Google Chrome',
]
PATH_FALLBACK = 'google-chrome'

LAUNCH_ARGS = [
    '--disable-notifications',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-gpu',
    '--disable-images',
    '--disable-dev-shm-usage',
    '--no-zygote',
]

# Breaks out when scrollTop stops advancing (document not scrollable).
AUTO_SCROLL_JS = """
async ({distance, delay}) => {
  const root = document.documentElement;
  while (root.scrollTop + window.innerHeight < root.scrollHeight) {
    const before = root.scrollTop;
    root.scrollTop += distance;
    await new Promise((resolve) => setTimeout(resolve, delay));
    if (root.scrollTop === before) break;
  }
}
"""

EXTRACT_JS = """
(nodes, sel) => nodes.map((el) => {
  const text = (s) => {
    const n = el.querySelector(s);
    return n ? (n.innerText || '').trim() : '';
  };
  const exp = el.querySelector(sel.experience);
  const anchor = el.querySelector(sel.link);
  return {
    title: text(sel.title),
    company: text(sel.company),
    location: text(sel.location),
    experience: exp ? (exp.innerText || '').trim() : 'No experience',
    link: anchor ? (anchor.href || anchor.getAttribute('href') || '') : '',
  };
})
"""


def find_browser(candidates: Sequence[str] = BROWSER_CANDIDATES, override: Optional[str] = None) -> Optional[str]:
    """Resolve a Chrome/Chromium executable.

    Order: explicit override, first existing candidate path, ``google-chrome`` on PATH.
    None means "let Playwright use its bundled Chromium".
    """
    if override:
        return override
    for candidate in candidates:
        if Path(candidate).exists():
            return candidate
    return shutil.which(PATH_FALLBACK)


def records_from_raw(raw: List[Dict[str, Any]]) -> List[JobRecord]:
    out: List[JobRecord] = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        out.append(JobRecord(
            title=item.get('title'),
            company=item.get('company'),
            location=item.get('location'),
            experience=item.get('experience'),
            link=item.get('link'),
        ))
    return out


class PageSession:
    def __init__(self, playwright, settings: Optional[Settings] = None, schema: Optional[ExtractionSchema] = None,
                 headless: bool = True, rng: Optional[random.Random] = None):
        self.playwright = playwright
        self.settings = settings or load_settings()
        self.schema = schema or ExtractionSchema()
        self.headless = headless
        self.rng = rng or random.Random()
        self.browser = None
        self.context = None
        self.page = None

    async def __aenter__(self) -> 'PageSession':
        await self.launch()
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def launch(self):
        executable = find_browser(override=self.settings.browser_path)
        logger.debug(f"Launching chromium executable={executable or 'bundled'} headless={self.headless}")
        try:
            self.browser = await self.playwright.chromium.launch(
                executable_path=executable,
                headless=self.headless,
                args=LAUNCH_ARGS,
            )
            self.context = await self.browser.new_context(
                viewport={'width': self.settings.viewport_width, 'height': self.settings.viewport_height},
            )
            await self.context.grant_permissions(['geolocation'], origin=self.settings.site_url)
            self.page = await self.context.new_page()
        except Exception as e:
            await self.close()
            raise LaunchError(f"Browser did not launch: {e}") from e

    async def close(self):
        for name in ('context', 'browser'):
            target = getattr(self, name)
            if target is None:
                continue
            try:
                await target.close()
            except PlaywrightError:
                logger.debug(f"Ignoring error closing {name}", exc_info=True)
            setattr(self, name, None)
        self.page = None

    def _require_page(self):
        if self.page is None:
            raise NavigationError("Page session is not launched")
        return self.page

    def pick_user_agent(self) -> str:
        pool = self.settings.user_agents
        if not pool:
            return DEFAULT_USER_AGENT
        return self.rng.choice(pool)

    async def rotate_user_agent(self) -> str:
        ua = self.pick_user_agent()
        page = self._require_page()
        try:
            await page.set_extra_http_headers({'User-Agent': ua})
        except PlaywrightError as e:
            raise NavigationError(f"Setting user agent failed: {e}") from e
        return ua

    async def navigate(self, url: str):
        page = self._require_page()
        logger.debug(f"Navigating to {url}")
        try:
            await page.goto(url, wait_until='domcontentloaded', timeout=self.settings.nav_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(f"Navigation timeout for {url}") from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation failed for {url}: {e}") from e

    async def auto_scroll(self):
        try:
            await self._require_page().evaluate(
                AUTO_SCROLL_JS,
                {'distance': self.settings.scroll_distance, 'delay': self.settings.scroll_delay_ms},
            )
        except PlaywrightError as e:
            raise NavigationError(f"Scrolling failed: {e}") from e

    async def wait_for_results(self, timeout_ms: Optional[int] = None):
        timeout_ms = timeout_ms or self.settings.selector_timeout_ms
        try:
            await self._require_page().wait_for_selector(self.schema.wrapper, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise SelectorTimeoutError(f"No results matching '{self.schema.wrapper}' after {timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationError(f"Waiting for results failed: {e}") from e

    async def extract_records(self) -> List[JobRecord]:
        try:
            raw = await self._require_page().eval_on_selector_all(
                self.schema.wrapper, EXTRACT_JS, self.schema.field_selectors()
            )
        except PlaywrightError as e:
            raise NavigationError(f"Extraction failed: {e}") from e
        return records_from_raw(raw)

    async def find_next_page(self):
        try:
            return await self._require_page().query_selector(self.schema.next_page)
        except PlaywrightError as e:
            logger.debug(f"Next page lookup failed: {e}")
            return None

    async def go_to_next_page(self, handle):
        page = self._require_page()
        try:
            async with page.expect_navigation(wait_until='domcontentloaded', timeout=self.settings.nav_timeout_ms):
                await handle.click()
        except PlaywrightTimeoutError as e:
            raise NavigationError("Timed out waiting for the next results page") from e
        except PlaywrightError as e:
            raise NavigationError(f"Next page click failed: {e}") from e


__all__ = ["PageSession", "find_browser", "records_from_raw", "BROWSER_CANDIDATES", "LAUNCH_ARGS"]
