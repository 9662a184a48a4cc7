"""Rolescout package public API."""
from importlib import metadata as _metadata

try:
    __version__ = _metadata.version("rolescout")
except _metadata.PackageNotFoundError:  # fallback when not installed
    __version__ = "0.1.0"

from .rolescout.models import JobRecord, RunConfig, SearchQuery  # re-export
from .rolescout.filters import filter_records  # re-export

__all__ = ["__version__", "JobRecord", "RunConfig", "SearchQuery", "filter_records"]
