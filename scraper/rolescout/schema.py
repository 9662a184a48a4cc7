"""Extraction schema: semantic field -> CSS selector.

The target site's markup is an external, fragile contract, so selectors are
configuration rather than constants. Defaults match the naukri.com results page.

Override file (yaml), resolved from an explicit path, then SCRAPER_SCHEMA_FILE,
then config/schema.yml:

  selectors:
    wrapper: .srp-jobtuple-wrapper
    title: a.title
    next_page: 'div[class="styles_pagination-cont__sWhS6"] > div > a:nth-of-type(2)'

Keys omitted from the file keep their defaults. Unknown keys or blank values
raise ValueError listing every problem.
"""
from __future__ import annotations
from pathlib import Path
import os, yaml
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict

CONFIG_DIR = Path(__file__).resolve().parent.parent / 'config'


class ExtractionSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    wrapper: str = '.srp-jobtuple-wrapper'
    title: str = 'a.title'
    company: str = 'a.comp-name'
    location: str = '.loc-wrap'
    experience: str = '.exp-wrap'
    link: str = 'a.title'
    next_page: str = 'div[class="styles_pagination-cont__sWhS6"] > div > a:nth-of-type(2)'

    def field_selectors(self) -> Dict[str, str]:
        """Per-record sub-selectors handed to the in-page extraction script."""
        return {
            'title': self.title,
            'company': self.company,
            'location': self.location,
            'experience': self.experience,
            'link': self.link,
        }


SCHEMA_KEYS = list(ExtractionSchema.model_fields)


def _resolve_file(path: Optional[Path] = None) -> Optional[Path]:
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ValueError(f"Schema file not found: {p}")
        return p
    override = os.getenv('SCRAPER_SCHEMA_FILE')
    if override:
        p = Path(override)
        if not p.exists():
            raise ValueError(f"Schema file override not found: {p}")
        return p
    default = CONFIG_DIR / 'schema.yml'
    return default if default.exists() else None


def _validate(selectors: Dict[str, object]):
    errors = []
    unknown = [k for k in selectors if k not in SCHEMA_KEYS]
    if unknown:
        errors.append(f"unknown selector keys: {', '.join(sorted(unknown))}")
    for k, v in selectors.items():
        if k in SCHEMA_KEYS and (not isinstance(v, str) or not v.strip()):
            errors.append(f"selector '{k}' must be a non-empty string")
    if errors:
        raise ValueError("Invalid extraction schema: " + "; ".join(errors))


def load_schema(path: Optional[Path] = None) -> ExtractionSchema:
    file_path = _resolve_file(path)
    if file_path is None:
        return ExtractionSchema()
    try:
        raw = yaml.safe_load(file_path.read_text(encoding='utf-8')) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid extraction schema file {file_path}: {e}") from e
    selectors = raw.get('selectors', raw) if isinstance(raw, dict) else None
    if not isinstance(selectors, dict):
        raise ValueError("Invalid extraction schema: expected a mapping of field -> selector")
    _validate(selectors)
    return ExtractionSchema(**{k: v.strip() for k, v in selectors.items()})


__all__ = ["ExtractionSchema", "load_schema", "SCHEMA_KEYS"]
