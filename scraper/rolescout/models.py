from __future__ import annotations
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple
import math
import re
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

NO_EXPERIENCE = "No experience"
SHEET_NAME = "Jobs"
COLUMNS = ("title", "company", "experience", "location", "link")

_SLUG_RGX = re.compile(r"[^a-z0-9.+#]+")


def slugify(value: str) -> str:
    """Lowercase and collapse anything that is not URL/file safe into '-'."""
    return _SLUG_RGX.sub("-", value.strip().lower()).strip("-")


def clean_text(value) -> str:
    """str() + strip, minus control characters a worksheet cell cannot hold."""
    return ILLEGAL_CHARACTERS_RE.sub("", str(value)).strip()


def output_path_for(role: str, directory: Path) -> Path:
    return Path(directory) / f"{slugify(role)}-jobs.xlsx"


class ExperienceRange(NamedTuple):
    minimum: float
    maximum: float = math.inf

    def contains(self, years: float) -> bool:
        return self.minimum <= years <= self.maximum


class SearchQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    location: str
    min_experience: int = Field(ge=0)
    freshness_days: int = Field(default=7, ge=0)

    def base_url(self, site: str) -> str:
        site = site.rstrip("/")
        return f"{site}/{slugify(self.role)}-jobs-in-{slugify(self.location)}?fjb={self.freshness_days}"

    def page_url(self, site: str, page_number: int) -> str:
        base = self.base_url(site)
        if page_number <= 1:
            return base
        return f"{base}&page={page_number}"


class JobRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    company: str = ""
    location: str = ""
    experience: str = NO_EXPERIENCE
    link: str = ""

    @field_validator("title", "company", "location", "link", mode="before")
    @classmethod
    def blank_if_missing(cls, v):
        if v is None:
            return ""
        return clean_text(v)

    @field_validator("experience", mode="before")
    @classmethod
    def sentinel_if_missing(cls, v):
        text = clean_text(v) if v is not None else ""
        return text or NO_EXPERIENCE

    def as_row(self) -> Tuple[str, str, str, str, str]:
        return (self.title, self.company, self.experience, self.location, self.link)

    @classmethod
    def from_row(cls, row) -> "JobRecord":
        values = list(row)[: len(COLUMNS)]
        values += [None] * (len(COLUMNS) - len(values))
        return cls(**dict(zip(COLUMNS, values)))


class RoleStatus(str, Enum):
    COMPLETED = "completed"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    STOPPED_ON_ERROR = "stopped_on_error"
    ABANDONED = "abandoned"


class RoleOutcome(BaseModel):
    role: str
    status: RoleStatus
    pages: int = 0
    records: int = 0
    attempts: int = 0
    output_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def launched(self) -> bool:
        return self.status != RoleStatus.ABANDONED


class RunSummary(BaseModel):
    outcomes: List[RoleOutcome] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        if any(o.status in (RoleStatus.DEADLINE_EXCEEDED, RoleStatus.ABANDONED) for o in self.outcomes):
            return 1
        return 0

    def to_dict(self) -> dict:
        return {
            "exit_code": self.exit_code,
            "roles": [o.model_dump(mode="json") for o in self.outcomes],
        }


def _default_directory() -> Path:
    return Path.home() / "Downloads"


class RunConfig(BaseModel):
    location: str
    experience: int = Field(ge=0)
    roles: List[str]
    freshness: int = Field(default=7, ge=0)
    timeout_minutes: float = Field(default=60, gt=0)
    directory: Path = Field(default_factory=_default_directory)
    concurrency: Optional[int] = Field(default=None, ge=1)
    headless: bool = True

    @field_validator("location")
    @classmethod
    def location_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("location must not be empty")
        return v

    @field_validator("roles", mode="before")
    @classmethod
    def split_roles(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        out: List[str] = []
        for item in v:
            for part in str(item).split(","):
                part = part.strip()
                if part:
                    out.append(part)
        if not out:
            raise ValueError("at least one role is required")
        return out

    @classmethod
    def build(cls, **kwargs) -> "RunConfig":
        """Construct and validate, translating pydantic errors into ConfigurationError."""
        try:
            return cls(**kwargs)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"Invalid configuration: {problems}") from e

    @property
    def timeout_seconds(self) -> float:
        return float(self.timeout_minutes) * 60.0

    @property
    def effective_concurrency(self) -> int:
        return self.concurrency or max(1, len(self.roles))

    def queries(self) -> List[SearchQuery]:
        """One query per distinct role; roles that map to the same output file are collapsed."""
        seen = set()
        out: List[SearchQuery] = []
        for role in self.roles:
            key = slugify(role)
            if not key or key in seen:
                continue
            seen.add(key)
            out.append(SearchQuery(role=role, location=self.location, min_experience=self.experience, freshness_days=self.freshness))
        return out
