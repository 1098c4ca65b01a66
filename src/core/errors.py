"""Exception hierarchy for the vacancy tracker.

Store errors are raised to the caller. Search errors never cross the
background task boundary: the orchestrator turns them into outcomes.
"""


class VacancyTrackerError(Exception):
    """Base class for every error raised by this package."""


class DuplicateVacancyError(VacancyTrackerError):
    """A vacancy with the same (title, company) already exists."""

    def __init__(self, title: str, company: str) -> None:
        self.title = title
        self.company = company
        super().__init__(f"Vacancy '{title}' at '{company}' is already in the local list")


class VacancyNotFoundError(VacancyTrackerError):
    """No vacancy matches the given (title, company)."""

    def __init__(self, title: str, company: str) -> None:
        self.title = title
        self.company = company
        super().__init__(f"Vacancy '{title}' at '{company}' not found")


class SearchCancelled(VacancyTrackerError):
    """The cancellation signal of an online search was observed closed."""


class SearchError(VacancyTrackerError):
    """An online search failed. ``str(err)`` is the detail shown to the user."""


class RequestBuildError(SearchError):
    """The HTTP request could not be constructed."""


class TransportFailure(SearchError):
    """Sending the request or reading the response body failed."""


class UnexpectedStatusError(SearchError):
    """The API answered with a non-200 status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Jooble API error (HTTP {status_code}): {body}")


class ResponseDecodeError(SearchError):
    """The response body is not the expected JSON document."""

    def __init__(self, reason: str, body: str) -> None:
        self.reason = reason
        self.body = body
        super().__init__(f"Failed to decode Jooble response: {reason}. Response: {body}")


class UpstreamApiError(SearchError):
    """The API reported an error payload inside an otherwise valid response."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"Jooble API returned an error: {message} (code: {code})")
