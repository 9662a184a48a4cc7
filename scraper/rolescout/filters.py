"""Result filter: experience-range overlap + location substring match.

Experience text is free-form ("2-5 Yrs", "3 years", "Fresher"). Anything that
cannot be read as a range or a single year count parses to (0, inf): such
records are never excluded on experience grounds.
"""
from __future__ import annotations
import math
import re
from typing import Iterable, List, Optional

from .models import ExperienceRange, JobRecord

LEADING_INT_RGX = re.compile(r"^\s*([0-9]+)")
YEAR_TOKENS = ("year", "yr")

UNBOUNDED = ExperienceRange(0, math.inf)


def _leading_int(text: str) -> Optional[int]:
    m = LEADING_INT_RGX.match(text)
    return int(m.group(1)) if m else None


def parse_experience(text: Optional[str]) -> ExperienceRange:
    exp = (text or "").strip().lower()
    if "-" in exp:
        low_txt, high_txt = exp.split("-", 1)
        low = _leading_int(low_txt)
        high = _leading_int(high_txt)
        if low is None:
            return UNBOUNDED
        if high is None:
            return ExperienceRange(low, math.inf)
        if high < low:
            low, high = high, low
        return ExperienceRange(low, high)
    if any(tok in exp for tok in YEAR_TOKENS):
        years = _leading_int(exp)
        if years is None:
            return UNBOUNDED
        return ExperienceRange(years, years)
    return UNBOUNDED


def location_matches(record_location: Optional[str], target: str) -> bool:
    job_loc = (record_location or "").lower()
    wanted = (target or "").strip().lower()
    if not job_loc:
        return not wanted
    return wanted in job_loc


def matches(record: JobRecord, experience: int, location: str) -> bool:
    return parse_experience(record.experience).contains(experience) and location_matches(record.location, location)


def filter_records(records: Iterable[JobRecord], experience: int, location: str) -> List[JobRecord]:
    return [r for r in records if matches(r, experience, location)]


__all__ = ["parse_experience", "location_matches", "matches", "filter_records", "UNBOUNDED"]
