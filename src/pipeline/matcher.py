"""Local filter/sort engine over a vacancy snapshot.

Matching rules:
  - status / experience: exact case-insensitive equality, always applied
  - keywords:            term is a substring of any keyword
  - everywhere:          term is a substring of title, company, description,
                         status, experience level, or any keyword
  - other fields:        case-insensitive substring of that field
  - empty term with a free-text selector: no filtering at all

The selector is resolved to a match function once per query, not per record.
"""

import logging
from collections.abc import Callable

from src.core.schemas import SearchField, SearchQuery, SortColumn, SortOrder, Vacancy

logger = logging.getLogger(__name__)

# A matcher decides whether a single vacancy belongs in the filtered view.
Matcher = Callable[[Vacancy], bool]


def _contains(term: str) -> Callable[[str], bool]:
    return lambda value: term in value.lower()


def _any_keyword(term: str) -> Matcher:
    return lambda v: any(term in kw.lower() for kw in v.keywords)


def _everywhere(term: str) -> Matcher:
    has_term = _contains(term)
    keyword_match = _any_keyword(term)

    def match(v: Vacancy) -> bool:
        return (
            has_term(v.title)
            or has_term(v.company)
            or has_term(v.description)
            or has_term(v.status.value)
            or has_term(v.experience_level.value)
            or keyword_match(v)
        )

    return match


def _field(getter: Callable[[Vacancy], str]) -> Callable[[str], Matcher]:
    def factory(term: str) -> Matcher:
        has_term = _contains(term)
        return lambda v: has_term(getter(v))

    return factory


def _exact(getter: Callable[[Vacancy], str]) -> Callable[[str], Matcher]:
    def factory(term: str) -> Matcher:
        return lambda v: getter(v).lower() == term

    return factory


_MATCHER_FACTORIES: dict[SearchField, Callable[[str], Matcher]] = {
    SearchField.EVERYWHERE: _everywhere,
    SearchField.TITLE: _field(lambda v: v.title),
    SearchField.COMPANY: _field(lambda v: v.company),
    SearchField.DESCRIPTION: _field(lambda v: v.description),
    SearchField.KEYWORDS: _any_keyword,
    SearchField.STATUS: _exact(lambda v: v.status.value),
    SearchField.EXPERIENCE: _exact(lambda v: v.experience_level.value),
}


def build_matcher(query: SearchQuery) -> Matcher | None:
    """Resolve a query into a match function, or None when nothing is filtered."""
    term = query.text.lower()
    if not term and not query.selector.is_enumerated:
        return None
    return _MATCHER_FACTORIES[query.selector](term)


def sort_vacancies(
    vacancies: list[Vacancy],
    column: SortColumn = SortColumn.TITLE,
    order: SortOrder = SortOrder.ASCENDING,
) -> None:
    """Stable in-place sort by a column, compared case-insensitively.

    Descending order inverts the comparison rather than reversing the sorted
    list, so equal keys keep their original relative order in both directions.
    """
    if column is SortColumn.COMPANY:
        key: Callable[[Vacancy], str] = lambda v: v.company.lower()
    elif column is SortColumn.STATUS:
        key = lambda v: v.status.value.lower()
    else:
        key = lambda v: v.title.lower()
    vacancies.sort(key=key, reverse=order is SortOrder.DESCENDING)


def filter_vacancies(
    snapshot: list[Vacancy],
    query: SearchQuery,
    column: SortColumn | None = None,
    order: SortOrder = SortOrder.ASCENDING,
) -> list[Vacancy]:
    """Return the vacancies matching the query, in snapshot order.

    When a sort column is given the result is then sorted by it. The
    snapshot itself is never modified.
    """
    matcher = build_matcher(query)
    if matcher is None:
        result = list(snapshot)
    else:
        result = [v for v in snapshot if matcher(v)]
        logger.debug(
            "Filter %s=%r kept %d of %d vacancies",
            query.selector.value, query.text, len(result), len(snapshot),
        )
    if column is not None:
        sort_vacancies(result, column, order)
    return result
