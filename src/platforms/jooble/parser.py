"""Jooble response parser: JSON body -> Vacancy objects.

Rules:
  - A populated ``error`` field is a failure even with HTTP 200.
  - A body that is not a search response but decodes as a bare
    ``{code, message}`` error is reported as that API error.
  - Jobs missing a title or a link are skipped and logged, never surfaced.
  - Mapped vacancies get default status, default experience level, and no
    keywords; Jooble provides none of these.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.core.cancellation import CancellationSignal
from src.core.errors import ResponseDecodeError, UpstreamApiError
from src.core.schemas import Vacancy

logger = logging.getLogger(__name__)


class JoobleJob(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    location: str = ""
    snippet: str = ""
    salary: str = ""
    source: str = ""
    type: str = ""
    link: str = ""
    company: str = ""
    updated: str = ""
    id: Any = None

    @field_validator(
        "title", "location", "snippet", "salary", "source", "type", "link", "company", "updated",
        mode="before",
    )
    @classmethod
    def loose_text(cls, v: object) -> object:
        # Jooble sends null for missing fields and numbers for some salaries.
        if v is None:
            return ""
        if isinstance(v, int | float):
            return str(v)
        return v


class JoobleError(BaseModel):
    code: int = 0
    message: str = ""


class JoobleResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_count: int = Field(default=0, alias="totalCount")
    jobs: list[JoobleJob] = Field(default_factory=list)
    error: JoobleError | None = None

    @field_validator("jobs", mode="before")
    @classmethod
    def null_jobs_as_empty(cls, v: object) -> object:
        return [] if v is None else v


def parse_response(body: bytes) -> JoobleResponse:
    """Decode a response body, raising on decode failures and API errors."""
    try:
        response = JoobleResponse.model_validate_json(body)
    except ValidationError as e:
        try:
            bare = JoobleError.model_validate_json(body)
        except ValidationError:
            bare = None
        if bare is not None and bare.message:
            raise UpstreamApiError(bare.code, bare.message) from e
        raise ResponseDecodeError(_first_error(e), _text(body)) from e

    if response.error is not None:
        raise UpstreamApiError(response.error.code, response.error.message)
    return response


def to_vacancy(job: JoobleJob) -> Vacancy | None:
    """Map one Jooble job to a Vacancy, or None if it lacks a title or link."""
    if not job.title.strip() or not job.link.strip():
        logger.info("Skipping Jooble job without title or link: %r", job.model_dump())
        return None
    return Vacancy(
        title=job.title,
        company=job.company,
        description=job.snippet,
        source_url=job.link,
    )


def map_jobs(jobs: list[JoobleJob], signal: CancellationSignal) -> list[Vacancy]:
    """Map jobs in order, checking for cancellation before each one."""
    vacancies: list[Vacancy] = []
    for job in jobs:
        signal.raise_if_closed("while processing results")
        vacancy = to_vacancy(job)
        if vacancy is not None:
            vacancies.append(vacancy)
    return vacancies


def _first_error(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"{loc}: {first['msg']}" if loc else first["msg"]


def _text(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")
