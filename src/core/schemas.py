"""Core data models for the vacancy tracker."""

from enum import Enum
from pathlib import PurePath
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Resume attachments accepted for a vacancy.
RESUME_EXTENSIONS = (".pdf", ".doc", ".docx", ".txt", ".rtf")


class Status(str, Enum):
    """Where the user stands with a vacancy. Declaration order is display order."""

    NEW = "New"
    PLANNING = "Planning to apply"
    APPLIED = "Applied"
    TEST_ASSIGNMENT = "Test assignment"
    INTERVIEW = "Interview"
    OFFER = "Offer"
    REJECTED = "Rejected"
    ARCHIVED = "Archived"


class ExperienceLevel(str, Enum):
    """Required experience as advertised."""

    UNSPECIFIED = "Unspecified"
    NONE = "No experience"
    UNDER_ONE_YEAR = "Less than 1 year"
    ONE_TO_THREE = "1-3 years"
    THREE_TO_SIX = "3-6 years"
    OVER_SIX = "More than 6 years"


def _lookup(enum_cls: type[Enum], value: object) -> object:
    """Resolve an enum member by value, case-insensitively."""
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == wanted:
                return member
    return value


def identity_key(title: str, company: str) -> tuple[str, str]:
    """Case-insensitive lookup and dedup key for a vacancy."""
    return (title.strip().casefold(), company.strip().casefold())


def normalize_keywords(keywords: list[str]) -> list[str]:
    """Trim, drop empties and case-insensitive duplicates, keep first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for kw in keywords:
        kw = kw.strip()
        if not kw or kw.lower() in seen:
            continue
        seen.add(kw.lower())
        out.append(kw)
    return out


def parse_keywords(text: str) -> list[str]:
    """Split a comma-separated keyword string ("go, backend") into keywords."""
    return normalize_keywords(text.split(","))


class Vacancy(BaseModel):
    """A single tracked job opportunity.

    Frozen: edits go through ``model_copy(update=...)``. Aliases match the
    on-disk JSON format.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    company: str = ""
    description: str = ""
    keywords: list[str] = Field(default_factory=list)
    source_url: str = Field(default="", alias="sourceURL")
    status: Status = Status.NEW
    experience_level: ExperienceLevel = Field(
        default=ExperienceLevel.UNSPECIFIED, alias="experienceLevel",
    )
    notes: str = ""
    resume_path: str = Field(default="", alias="resumePath")
    resume_file_name: str = Field(default="", alias="resumeFileName")

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "vacancy title must not be empty"
            raise ValueError(msg)
        return v.strip()

    @field_validator("company", "source_url")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("keywords", mode="before")
    @classmethod
    def keywords_as_ordered_set(cls, v: object) -> object:
        if v is None:
            return []
        if isinstance(v, str):
            return parse_keywords(v)
        if isinstance(v, list) and all(isinstance(kw, str) for kw in v):
            return normalize_keywords(v)
        return v

    @field_validator("status", mode="before")
    @classmethod
    def status_by_label(cls, v: object) -> object:
        # Older files store an empty status for "New".
        if v == "" or v is None:
            return Status.NEW
        return _lookup(Status, v)

    @field_validator("experience_level", mode="before")
    @classmethod
    def experience_by_label(cls, v: object) -> object:
        if v == "" or v is None:
            return ExperienceLevel.UNSPECIFIED
        return _lookup(ExperienceLevel, v)

    @field_validator("resume_path")
    @classmethod
    def resume_has_document_extension(cls, v: str) -> str:
        v = v.strip()
        if v and PurePath(v).suffix.lower() not in RESUME_EXTENSIONS:
            allowed = ", ".join(ext.lstrip(".").upper() for ext in RESUME_EXTENSIONS)
            msg = f"Unsupported resume file format '{v}'. Allowed: {allowed}"
            raise ValueError(msg)
        return v

    @property
    def key(self) -> tuple[str, str]:
        return identity_key(self.title, self.company)


class SearchField(str, Enum):
    """Which part of a vacancy a local search looks at."""

    EVERYWHERE = "everywhere"
    TITLE = "title"
    COMPANY = "company"
    DESCRIPTION = "description"
    KEYWORDS = "keywords"
    STATUS = "status"
    EXPERIENCE = "experience"

    @property
    def is_enumerated(self) -> bool:
        return self in (SearchField.STATUS, SearchField.EXPERIENCE)


class SearchQuery(BaseModel):
    """A field selector plus the text to look for.

    For the status and experience selectors the text must name one of the
    enumerated values; it is normalized to that value's label.
    """

    model_config = ConfigDict(frozen=True)

    selector: SearchField = SearchField.EVERYWHERE
    text: str = Field(default="", validate_default=True)

    @field_validator("text")
    @classmethod
    def enumerated_text_is_known(cls, v: str, info: ValidationInfo) -> str:
        selector = info.data.get("selector")
        if selector is None or not selector.is_enumerated:
            return v
        enum_cls: type[Enum] = Status if selector is SearchField.STATUS else ExperienceLevel
        member = _lookup(enum_cls, v)
        if not isinstance(member, enum_cls):
            valid = ", ".join(m.value for m in enum_cls)
            msg = f"Unknown {selector.value} '{v}'. Expected one of: {valid}"
            raise ValueError(msg)
        return member.value


class SortColumn(str, Enum):
    TITLE = "title"
    COMPANY = "company"
    STATUS = "status"


class SortOrder(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class ResultsOutcome(BaseModel):
    """Online search finished: vacancies not already in the local list."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["results"] = "results"
    vacancies: list[Vacancy] = Field(default_factory=list)


class CancelledOutcome(BaseModel):
    """Online search was cancelled; any late result or error is suppressed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["cancelled"] = "cancelled"


class FailedOutcome(BaseModel):
    """Online search failed; ``detail`` is shown to the user as-is."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    detail: str


SearchOutcome = ResultsOutcome | CancelledOutcome | FailedOutcome
