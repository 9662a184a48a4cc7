"""Error taxonomy for the role scraper.

LaunchError            browser process failed to start (retried, then the role is abandoned)
NavigationError        page failed to load (ends the role's pagination loop)
SelectorTimeoutError   expected results never appeared (same policy as NavigationError)
PersistenceError       workbook read / write / rename failed (batch dropped, prior file intact)
ConfigurationError     invalid run configuration (fails before any scraping starts)
"""
from __future__ import annotations


class ScrapeError(Exception):
    pass


class LaunchError(ScrapeError):
    pass


class NavigationError(ScrapeError):
    pass


class SelectorTimeoutError(NavigationError):
    pass


class PersistenceError(ScrapeError):
    pass


class ConfigurationError(ScrapeError):
    pass


__all__ = [
    "ScrapeError",
    "LaunchError",
    "NavigationError",
    "SelectorTimeoutError",
    "PersistenceError",
    "ConfigurationError",
]
