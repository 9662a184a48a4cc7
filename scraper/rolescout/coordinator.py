"""Fan out one RoleScraper per role under a concurrency cap.

Roles are independent: each owns its browser, page, accumulated set and output
file, so nothing is shared between tasks except the save directory. A failure
in one role (even an unexpected exception) becomes that role's outcome and
never cancels its siblings.
"""
from __future__ import annotations
import asyncio
import json
import logging
from pathlib import Path
from typing import Callable, List, Optional

from .errors import ConfigurationError
from .logging_config import log_event, role_logger
from .models import RoleOutcome, RoleStatus, RunConfig, RunSummary, SearchQuery
from .role_scraper import RoleScraper
from .schema import ExtractionSchema
from .session import PageSession
from .settings import Settings, load_settings

logger = logging.getLogger('coordinator')

SessionFactory = Callable[[], object]


def prepare_directory(path: Path) -> Path:
    """Create the save directory if needed; ConfigurationError if that is impossible."""
    directory = Path(path).expanduser()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create save directory {directory}: {e}") from e
    return directory


class ScrapeCoordinator:
    def __init__(self, config: RunConfig, settings: Optional[Settings] = None, schema: Optional[ExtractionSchema] = None,
                 session_factory: Optional[SessionFactory] = None, scraper_cls=RoleScraper):
        self.config = config
        self.settings = settings or load_settings()
        self.schema = schema or ExtractionSchema()
        self.session_factory = session_factory
        self.scraper_cls = scraper_cls

    async def _run_role(self, query: SearchQuery, directory: Path, factory: SessionFactory, semaphore: asyncio.Semaphore) -> RoleOutcome:
        async with semaphore:
            role_logger('coordinator', query.role).info(f"starting search location='{query.location}' experience={query.min_experience} freshness={query.freshness_days}")
            log_event('role_start', role=query.role, location=query.location, experience=query.min_experience)
            scraper = self.scraper_cls(
                query,
                directory,
                factory,
                settings=self.settings,
                timeout_seconds=self.config.timeout_seconds,
            )
            return await scraper.run()

    async def run(self) -> RunSummary:
        directory = prepare_directory(self.config.directory)
        queries = self.config.queries()
        if self.session_factory is not None:
            return await self._gather(queries, directory, self.session_factory)
        from playwright.async_api import async_playwright
        async with async_playwright() as pw:
            def factory():
                return PageSession(pw, settings=self.settings, schema=self.schema, headless=self.config.headless)
            return await self._gather(queries, directory, factory)

    async def _gather(self, queries: List[SearchQuery], directory: Path, factory: SessionFactory) -> RunSummary:
        cap = self.config.effective_concurrency
        semaphore = asyncio.Semaphore(cap)
        logger.info(f"Scraping {len(queries)} roles with concurrency={cap} into {directory}")
        results = await asyncio.gather(
            *(self._run_role(q, directory, factory, semaphore) for q in queries),
            return_exceptions=True,
        )
        outcomes: List[RoleOutcome] = []
        for query, result in zip(queries, results):
            if isinstance(result, BaseException):
                if isinstance(result, (KeyboardInterrupt, SystemExit)):
                    raise result
                role_logger('coordinator', query.role).error(f"crashed: {result!r}")
                log_event('role_crashed', role=query.role, message=repr(result))
                result = RoleOutcome(role=query.role, status=RoleStatus.ABANDONED, error=repr(result))
            outcomes.append(result)
        summary = RunSummary(outcomes=outcomes)
        self._report(summary, directory)
        return summary

    def _report(self, summary: RunSummary, directory: Path):
        for o in summary.outcomes:
            logger.info(f"  {o.role}: {o.status.value} pages={o.pages} records={o.records}")
        logger.info(f"Saved workbooks in: {directory}")
        log_event('run_complete', exit_code=summary.exit_code, roles=len(summary.outcomes))
        path = self.settings.summary_path
        if path:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(json.dumps(summary.to_dict(), indent=2), encoding='utf-8')
            except OSError as e:
                logger.warning(f"Could not write run summary {path}: {e}")


def run_scrape(config: RunConfig, settings: Optional[Settings] = None, schema: Optional[ExtractionSchema] = None,
               session_factory: Optional[SessionFactory] = None) -> RunSummary:
    """Synchronous entry point: run every role to completion and return the summary."""
    return asyncio.run(ScrapeCoordinator(config, settings, schema, session_factory).run())


__all__ = ["ScrapeCoordinator", "prepare_directory", "run_scrape"]
