"""Per-role scraping state machine.

  launching --ok--> scraping(1) -> scraping(2) -> ... -> completed
      |                 |
      |                 +-- deadline reached at a page boundary --> deadline_exceeded
      |                 +-- navigation / selector / extraction error --> stopped_on_error
      +-- LaunchError, retried up to Settings.launch_retries --> abandoned

Only browser launch is retried. Once a browser is up, whatever happens inside
the page loop ends the role's run instead of triggering another launch.

The accumulated set is persisted after every page (full set, replace mode), so
pages already scraped survive a deadline stop, a page error or a crash. Rows
already in the role's workbook from an earlier run are kept as a baseline and
written ahead of this run's rows; links already present are not added twice.
The deadline is polled at the start of each page iteration; it is not
preemptive, so one slow page load can overrun it.
"""
from __future__ import annotations
import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from .errors import LaunchError, PersistenceError, ScrapeError
from .filters import filter_records
from .logging_config import log_event, role_logger
from .models import JobRecord, RoleOutcome, RoleStatus, SearchQuery, output_path_for
from .settings import Settings, load_settings
from .workbook import read_records, write_records

@dataclass
class ScrapeSession:
    query: SearchQuery
    started_at: float
    deadline: float
    page_number: int = 1
    records: List[JobRecord] = field(default_factory=list)
    has_more_pages: bool = True
    pages_completed: int = 0
    dirty: bool = False

    def expired(self, now: float) -> bool:
        return now > self.deadline


class RoleScraper:
    def __init__(self, query: SearchQuery, directory: Path, session_factory: Callable[[], object],
                 settings: Optional[Settings] = None, timeout_seconds: float = 3600.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.query = query
        self.output_path = output_path_for(query.role, directory)
        self.session_factory = session_factory
        self.settings = settings or load_settings()
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.sleep = sleep
        self.session: Optional[ScrapeSession] = None
        self.log = role_logger('role_scraper', query.role)

    @property
    def role(self) -> str:
        return self.query.role

    async def run(self) -> RoleOutcome:
        retries = self.settings.launch_retries
        attempt = 0
        last_error: Optional[str] = None
        while attempt < retries:
            attempt += 1
            driver = self.session_factory()
            try:
                await driver.launch()
            except LaunchError as e:
                last_error = str(e)
                self.log.error(f"browser did not launch (attempt {attempt}/{retries}): {e}")
                log_event('launch_failed', role=self.role, attempt=attempt, message=last_error)
                if attempt < retries:
                    self.log.info(f"retrying browser launch in {self.settings.launch_retry_delay}s")
                    await self.sleep(self.settings.launch_retry_delay)
                continue
            try:
                status, error = await self._scrape(driver)
            finally:
                await driver.close()
            outcome = self._outcome(status, attempt, error)
            self.log.info(f"finished status={status.value} pages={outcome.pages} records={outcome.records}")
            log_event('role_finished', role=self.role, status=status.value, pages=outcome.pages, records=outcome.records)
            return outcome
        self.log.error(f"abandoned after {retries} launch attempts")
        log_event('role_abandoned', role=self.role, attempts=attempt, message=last_error)
        return self._outcome(RoleStatus.ABANDONED, attempt, last_error)

    def _outcome(self, status: RoleStatus, attempts: int, error: Optional[str]) -> RoleOutcome:
        state = self.session
        return RoleOutcome(
            role=self.role,
            status=status,
            pages=state.pages_completed if state else 0,
            records=len(state.records) if state else 0,
            attempts=attempts,
            output_path=self.output_path if state and state.pages_completed else None,
            error=error,
        )

    async def _persist(self, baseline: List[JobRecord]) -> bool:
        state = self.session
        ok = await asyncio.to_thread(write_records, baseline + state.records, self.output_path, self.settings)
        state.dirty = not ok
        return ok

    async def _scrape(self, driver) -> Tuple[RoleStatus, Optional[str]]:
        now = self.clock()
        state = self.session = ScrapeSession(query=self.query, started_at=now, deadline=now + self.timeout_seconds)
        try:
            baseline = await asyncio.to_thread(read_records, self.output_path)
        except PersistenceError as e:
            self.log.error(f"existing output file is unreadable, not overwriting it: {e}")
            log_event('resume_failed', role=self.role, path=str(self.output_path), message=str(e))
            return RoleStatus.STOPPED_ON_ERROR, str(e)
        if baseline:
            self.log.info(f"resuming with {len(baseline)} rows already in {self.output_path.name}")
        known_links: Set[str] = {r.link for r in baseline if r.link}

        status, error = RoleStatus.COMPLETED, None
        while state.has_more_pages:
            if state.expired(self.clock()):
                self.log.warning(f"stopping due to time limit after {state.pages_completed} pages")
                log_event('deadline_exceeded', role=self.role, pages=state.pages_completed, records=len(state.records))
                status = RoleStatus.DEADLINE_EXCEEDED
                break
            try:
                await self._scrape_page(driver, baseline, known_links)
                await self._advance(driver)
            except ScrapeError as e:
                self.log.error(f"error on page {state.page_number}: {e}")
                log_event('page_failed', role=self.role, page=state.page_number, message=str(e))
                state.has_more_pages = False
                status, error = RoleStatus.STOPPED_ON_ERROR, str(e)
        if state.dirty:
            await self._persist(baseline)
        if state.pages_completed:
            self.log.info(f"saved {len(state.records)} jobs to {self.output_path}")
        return status, error

    async def _scrape_page(self, driver, baseline: List[JobRecord], known_links: Set[str]):
        state = self.session
        n = state.page_number
        await driver.rotate_user_agent()
        await driver.navigate(self.query.page_url(self.settings.site_url, n))
        await driver.auto_scroll()
        await driver.wait_for_results()
        raw = await driver.extract_records()
        kept = filter_records(raw, self.query.min_experience, self.query.location)
        fresh = []
        for rec in kept:
            if rec.link and rec.link in known_links:
                continue
            if rec.link:
                known_links.add(rec.link)
            fresh.append(rec)
        state.records.extend(fresh)
        await self._persist(baseline)
        state.pages_completed += 1
        self.log.info(f"found {len(kept)} jobs on page {n} ({len(fresh)} new, {len(raw)} scanned)")
        log_event('page_scraped', role=self.role, page=n, scanned=len(raw), kept=len(kept), new=len(fresh))

    async def _advance(self, driver):
        state = self.session
        handle = await driver.find_next_page()
        if handle is None:
            state.has_more_pages = False
            return
        await driver.go_to_next_page(handle)
        state.page_number += 1
        await self.sleep(self.settings.page_delay)


__all__ = ["RoleScraper", "ScrapeSession"]
