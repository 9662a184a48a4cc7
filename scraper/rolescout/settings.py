"""Centralized settings with environment + runtime config overlay.
Provides typed accessors to avoid scattering magic numbers.

Resolution order per key: environment variable, then the lowercased key in
config/runtime.yml (or the file named by SCRAPER_RUNTIME_FILE), then the default.
"""
from __future__ import annotations
from pathlib import Path
import os, yaml
from dataclasses import dataclass, field
from typing import Optional, Tuple

_RUNTIME_CACHE: dict | None = None

CONFIG_DIR = Path(__file__).resolve().parent.parent / 'config'

DEFAULT_SITE_URL = 'https://www.naukri.com'

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
)

DESKTOP_USER_AGENTS = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 14_4) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36 Edg/124.0.0.0',
)


def _runtime_file() -> Path:
    override = os.getenv('SCRAPER_RUNTIME_FILE')
    if override:
        return Path(override)
    return CONFIG_DIR / 'runtime.yml'


def _load_runtime(force_reload: bool = False) -> dict:
    global _RUNTIME_CACHE
    if _RUNTIME_CACHE is None or force_reload:
        cfg_file = _runtime_file()
        if cfg_file.exists():
            try:
                _RUNTIME_CACHE = yaml.safe_load(cfg_file.read_text(encoding='utf-8')) or {}
            except (OSError, yaml.YAMLError):
                _RUNTIME_CACHE = {}
        else:
            _RUNTIME_CACHE = {}
    return _RUNTIME_CACHE


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is not None:
        try:
            return float(v)
        except ValueError:
            return default
    try:
        return float(_load_runtime().get(name.lower(), default))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is not None:
        try:
            return int(v)
        except ValueError:
            return default
    try:
        return int(_load_runtime().get(name.lower(), default))
    except (TypeError, ValueError):
        return default


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    v = os.getenv(name)
    if v is not None:
        return v
    raw = _load_runtime().get(name.lower(), default)
    return None if raw is None else str(raw)


def _user_agents() -> Tuple[str, ...]:
    raw = _load_runtime().get('user_agents')
    if raw is None:
        return DESKTOP_USER_AGENTS
    if isinstance(raw, str):
        raw = [raw]
    return tuple(str(ua).strip() for ua in raw if ua and str(ua).strip())


@dataclass(frozen=True)
class Settings:
    site_url: str = DEFAULT_SITE_URL
    nav_timeout_ms: int = 30000
    selector_timeout_ms: int = 20000
    scroll_distance: int = 100
    scroll_delay_ms: int = 100
    page_delay: float = 3.0
    launch_retries: int = 3
    launch_retry_delay: float = 5.0
    rename_retries: int = 5
    rename_delay: float = 0.2
    viewport_width: int = 1366
    viewport_height: int = 768
    browser_path: Optional[str] = None
    summary_path: Optional[Path] = None
    user_agents: Tuple[str, ...] = field(default=DESKTOP_USER_AGENTS)


def load_settings(force_reload: bool = False) -> Settings:
    _load_runtime(force_reload=force_reload)
    summary = _env_str('SCRAPER_RUN_SUMMARY', None)
    return Settings(
        site_url=_env_str('SCRAPER_SITE_URL', DEFAULT_SITE_URL) or DEFAULT_SITE_URL,
        nav_timeout_ms=_env_int('SCRAPER_NAV_TIMEOUT_MS', 30000),
        selector_timeout_ms=_env_int('SCRAPER_SELECTOR_TIMEOUT_MS', 20000),
        scroll_distance=_env_int('SCRAPER_SCROLL_DISTANCE', 100),
        scroll_delay_ms=_env_int('SCRAPER_SCROLL_DELAY_MS', 100),
        page_delay=_env_float('SCRAPER_PAGE_DELAY', 3.0),
        launch_retries=max(1, _env_int('SCRAPER_LAUNCH_RETRIES', 3)),
        launch_retry_delay=_env_float('SCRAPER_LAUNCH_RETRY_DELAY', 5.0),
        rename_retries=max(1, _env_int('SCRAPER_RENAME_RETRIES', 5)),
        rename_delay=_env_float('SCRAPER_RENAME_DELAY', 0.2),
        viewport_width=_env_int('SCRAPER_VIEWPORT_WIDTH', 1366),
        viewport_height=_env_int('SCRAPER_VIEWPORT_HEIGHT', 768),
        browser_path=_env_str('SCRAPER_BROWSER_PATH', None),
        summary_path=Path(summary) if summary else None,
        user_agents=_user_agents(),
    )
